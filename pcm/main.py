import os

from dotenv import load_dotenv

load_dotenv()

from pcm import create_app

app = create_app(os.environ.get('PCM_CONFIG', 'default'))


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    app.run(debug=app.config['DEBUG'], port=port, host='0.0.0.0')
