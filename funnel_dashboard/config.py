"""
Configuration management for the funnel dashboard.
"""
import os
from dotenv import load_dotenv
from sqlalchemy.engine import make_url

load_dotenv()


def build_database_uri(url: str, service_key: str = '') -> str:
    """
    Normalize the datastore URL and attach the privileged access key.

    SQLAlchemy requires postgresql:// not postgres://. When a service key
    is provided it becomes the connection password.
    """
    if not url:
        return ''
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    if service_key:
        url = make_url(url).set(password=service_key).render_as_string(hide_password=False)
    return url


def parse_origins(value: str) -> list:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


class BaseConfig:
    """Base configuration."""
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Dashboard defaults
    DASHBOARD_TIMEZONE = os.getenv('DASHBOARD_TIMEZONE', 'UTC')
    DASHBOARD_TABLE_LIMIT = int(os.getenv('DASHBOARD_TABLE_LIMIT', '50'))
    DASHBOARD_TOP_CODES = int(os.getenv('DASHBOARD_TOP_CODES', '5'))

    CORS_ORIGINS = parse_origins(os.getenv(
        'CORS_ORIGINS',
        'http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173'
    ))

    @classmethod
    def validate_timezone(cls) -> None:
        """
        Check that DASHBOARD_TIMEZONE names a zone in the tz database.

        Raises:
            RuntimeError: If the zone cannot be resolved
        """
        from zoneinfo import ZoneInfoNotFoundError
        from .services.funnel_metrics import resolve_timezone

        try:
            resolve_timezone(cls.DASHBOARD_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise RuntimeError(
                f"DASHBOARD_TIMEZONE '{cls.DASHBOARD_TIMEZONE}' is not a known time zone: {e}"
            ) from e


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = build_database_uri(
        os.getenv('DATABASE_URL', ''),
        os.getenv('DATABASE_SERVICE_KEY', '')
    ) or 'sqlite:///funnel_dashboard_dev.db'  # SQLite fallback for local dev


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    _service_key = os.getenv('DATABASE_SERVICE_KEY', '')

    SQLALCHEMY_DATABASE_URI = build_database_uri(_db_url, _service_key)

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
        # The dashboard never writes; have Postgres enforce it
        'connect_args': {'options': '-c default_transaction_read_only=on'},
    }

    @classmethod
    def validate_database_url(cls) -> str:
        """
        Validate the datastore settings in production.

        Raises:
            RuntimeError: If DATABASE_URL is missing
        """
        if not cls._db_url:
            raise RuntimeError(
                "CRITICAL: DATABASE_URL environment variable is not set!\n"
                "Production deployments MUST point at the analytics datastore."
            )
        return cls.SQLALCHEMY_DATABASE_URI


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    DASHBOARD_TIMEZONE = 'UTC'
    DASHBOARD_TABLE_LIMIT = 50
    DASHBOARD_TOP_CODES = 5


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Args:
        config_name: The configuration environment name

    Raises:
        RuntimeError: If the dashboard time zone is unknown, or the
            datastore URL is missing in production
    """
    get_config(config_name).validate_timezone()
    if config_name == 'production':
        ProductionConfig.validate_database_url()
