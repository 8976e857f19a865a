import os

from dotenv import load_dotenv

from pcm.services.metrics_service import MetricsThresholds

load_dotenv()

_data_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'data')


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'a_default_secret_key')
    AUTH_SECRET_KEY = os.environ.get('AUTH_SECRET_KEY', SECRET_KEY)
    AUTH_TOKEN_EXPIRY_HOURS = int(os.environ.get('AUTH_TOKEN_EXPIRY_HOURS', '24'))
    DATABASE_PATH = os.environ.get('DATABASE_PATH', os.path.join(_data_dir, 'pcm.db'))
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    OVERDUE_AFTER_DAYS = int(os.environ.get('OVERDUE_AFTER_DAYS', '7'))
    PREVENTIVE_INTERVAL_DAYS = int(os.environ.get('PREVENTIVE_INTERVAL_DAYS', '90'))
    RELIABILITY_WINDOW_DAYS = int(os.environ.get('RELIABILITY_WINDOW_DAYS', '30'))
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class TestingConfig(Config):
    """Test configuration."""
    TESTING = True
    AUTH_SECRET_KEY = 'test-secret-key'


class ProductionConfig(Config):
    """Production configuration."""
    # Must be provided by the environment in production
    AUTH_SECRET_KEY = os.environ.get('AUTH_SECRET_KEY')


config_by_name = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def thresholds_from_config(config) -> MetricsThresholds:
    return MetricsThresholds(
        preventive_interval_days=config['PREVENTIVE_INTERVAL_DAYS'],
        overdue_after_days=config['OVERDUE_AFTER_DAYS'],
        reliability_window_days=config['RELIABILITY_WINDOW_DAYS'],
    )
