"""
Company registration and manager login.

A company is created together with its manager's identity account; the
manager email is unique across tenants. Tokens issued at login carry the
company id as the tenant claim. If the company record cannot be written,
the identity account is removed again so the email stays registrable.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict

from pcm.identity import IdentityError, IdentityProvider
from pcm.models import Company, CompanyRegistration
from pcm.store import RecordStore

logger = logging.getLogger(__name__)


class RegistrationError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class AuthenticationError(Exception):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass
class LoginResult:
    token: str
    company: Company

    def to_dict(self) -> Dict[str, Any]:
        return {
            'token': self.token,
            'company': self.company.model_dump(mode='json'),
        }


class CompanyService:
    """Coordinates the identity provider and the record store."""

    def __init__(self, store: RecordStore, identity: IdentityProvider):
        self.store = store
        self.identity = identity

    def register_company(self, registration: CompanyRegistration) -> Company:
        if self.store.get_company_by_email(registration.manager_email):
            raise RegistrationError(
                'EMAIL_IN_USE',
                "A company is already registered with this email"
            )

        try:
            self.identity.create_user(registration.manager_email, registration.password)
        except IdentityError as e:
            raise RegistrationError(e.code.upper().replace('-', '_'), e.message) from e

        try:
            company = self.store.create_company(registration)
        except Exception:
            logger.exception(f"Company creation failed for {registration.manager_email}; removing identity")
            self.identity.delete_user(registration.manager_email)
            raise

        logger.info(f"Company registered: {company.id} (plan: {company.plan.value})")
        return company

    def login(self, email: str, password: str) -> LoginResult:
        try:
            normalized = self.identity.authenticate(email, password)
        except IdentityError as e:
            raise AuthenticationError('INVALID_CREDENTIALS', e.message) from e

        company = self.store.get_company_by_email(normalized)
        if company is None:
            raise AuthenticationError('COMPANY_NOT_FOUND', "Company not found for this email")

        token = self.identity.issue_token(normalized, {'tenant_id': company.id})
        logger.info(f"Manager logged in: {normalized} (tenant {company.id})")
        return LoginResult(token=token, company=company)

    def logout(self, token: str):
        self.identity.sign_out(token)
