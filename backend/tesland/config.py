"""
tesland/config.py - Application configuration and Firebase initialization.

This module defines a Pydantic BaseSettings class to load configuration from environment,
and lazily initializes the Firebase Admin SDK (Auth, Firestore, Messaging) using the provided credentials.
All other modules import `settings` and call `get_db()` for the Firestore client.
"""
from functools import lru_cache
from typing import Optional

import firebase_admin
from dotenv import load_dotenv
from firebase_admin import credentials, firestore
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Also exposes .env values (e.g. GOOGLE_APPLICATION_CREDENTIALS) to the Google libraries
load_dotenv()


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""
    firebase_cred_file: str = Field('firebase_service_account.json')
    firebase_project_id: Optional[str] = Field(None)

    # Firebase credentials from environment variables (for Cloud Run)
    firebase_private_key_id: Optional[str] = Field(None)
    firebase_private_key: Optional[str] = Field(None)
    firebase_client_email: Optional[str] = Field(None)
    firebase_client_id: Optional[str] = Field(None)
    firebase_auth_uri: Optional[str] = Field(None)
    firebase_token_uri: Optional[str] = Field(None)
    firebase_auth_provider_x509_cert_url: Optional[str] = Field(None)
    firebase_client_x509_cert_url: Optional[str] = Field(None)

    # Used by the identity REST endpoints (sign-in, sign-up, token refresh, password reset)
    firebase_web_api_key: str = Field('')

    # Chat assistant gateway
    ai_gateway_url: str = Field('https://ai.gateway.lovable.dev/v1/chat/completions')
    ai_gateway_api_key: str = Field('')
    ai_model: str = Field('google/gemini-3-flash-preview')

    # Tesla OAuth (account connection) and Fleet API partner registration
    tesla_client_id: str = Field('')
    tesla_client_secret: str = Field('')
    tesla_auth_url: str = Field('https://auth.tesla.com/oauth2/v3')
    partner_domain: str = Field('ketgombosreset.lovable.app')

    # SMTP for appointment e-mails
    smtp_host: str = "localhost"
    smtp_port: int = 465
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None
    smtp_use_starttls: bool = False  # true for 587
    email_sender_name: str = Field('Tesla Service')
    manage_url: str = Field('https://ketgombosreset.lovable.app/manage')

    # Where the client package reaches this backend (logout revoke)
    api_base_url: str = Field('http://localhost:8000')

    debug: bool = Field(False)
    allowed_origins: str = Field('*')  # Comma-separated list or '*' for all
    reminders_enabled: bool = Field(False)
    reminder_interval_minutes: int = Field(5)
    http_timeout: float = Field(10.0)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    def model_post_init(self, __context):
        """Validate Firebase Web API Key format when one is configured."""
        if self.firebase_web_api_key and not self.firebase_web_api_key.startswith('AIza'):
            raise ValueError("FIREBASE_WEB_API_KEY must be a valid Firebase Web API Key starting with 'AIza'")

    @property
    def cors_origins(self) -> list:
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(',')]


# Load settings from environment (.env file, etc.)
settings = Settings()


def _load_credentials():
    # Cloud Run passes the service account field by field
    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
        settings.firebase_auth_uri,
        settings.firebase_token_uri,
        settings.firebase_auth_provider_x509_cert_url,
        settings.firebase_client_x509_cert_url
    ]):
        cred_dict = {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "auth_uri": settings.firebase_auth_uri,
            "token_uri": settings.firebase_token_uri,
            "auth_provider_x509_cert_url": settings.firebase_auth_provider_x509_cert_url,
            "client_x509_cert_url": settings.firebase_client_x509_cert_url
        }
        return credentials.Certificate(cred_dict)
    # Local development
    return credentials.Certificate(settings.firebase_cred_file)


@lru_cache
def get_firebase_app() -> firebase_admin.App:
    """Initialize the default Firebase app once; reuse it if it already exists."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {'projectId': settings.firebase_project_id} if settings.firebase_project_id else None
        return firebase_admin.initialize_app(_load_credentials(), options)


def get_db():
    """Firestore client. Also used as a FastAPI dependency so tests can override it."""
    return firestore.client(get_firebase_app())
