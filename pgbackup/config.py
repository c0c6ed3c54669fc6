import os


def _env_bool(name, default):
    return os.environ.get(name, default).lower() in ('true', '1', 'yes')


class Config:
    """Base configuration"""

    # Directories
    BACKUP_DIR = os.environ.get('BACKUP_DIR') or os.path.join(os.path.expanduser('~'), 'pg_backups')
    LOG_FILE = os.environ.get('LOG_FILE') or os.path.join(BACKUP_DIR, 'pg_backup.log')
    LOCK_FILE = os.environ.get('LOCK_FILE') or os.path.join(BACKUP_DIR, '.pg_backup.lock')

    # Database
    DB_NAME = os.environ.get('DB_NAME') or 'production_db'
    DB_USER = os.environ.get('DB_USER') or 'postgres'
    # Leave empty to use peer authentication
    DB_PASSWORD = os.environ.get('PGPASSWORD', '')

    # Account that owns the database service; dumps run with its privileges
    DB_SERVICE_USER = os.environ.get('DB_SERVICE_USER') or 'postgres'
    USE_SUDO = _env_bool('USE_SUDO', 'true')

    # Artifact names
    LOGICAL_PREFIX = os.environ.get('LOGICAL_PREFIX') or DB_NAME
    PHYSICAL_PREFIX = os.environ.get('PHYSICAL_PREFIX') or 'pg_base_backup'

    # Email
    ALERT_EMAIL = os.environ.get('ALERT_EMAIL') or 'root@localhost'
    FROM_EMAIL = os.environ.get('FROM_EMAIL') or 'root@localhost'
    LOG_TAIL_LINES = int(os.environ.get('LOG_TAIL_LINES', 15))
    MAIL_COMMAND = os.environ.get('MAIL_COMMAND') or 'mail'

    # SMTP is used instead of the mail command when SMTP_HOST is set
    SMTP_HOST = os.environ.get('SMTP_HOST', '').strip()
    SMTP_PORT = int(os.environ.get('SMTP_PORT', 587))
    SMTP_USER = os.environ.get('SMTP_USER', '').strip()
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD', '')
    SMTP_USE_TLS = _env_bool('SMTP_USE_TLS', 'true')
    SMTP_USE_SSL = _env_bool('SMTP_USE_SSL', 'false')

    # Remote destination: rclone remote ("name:path"), s3://bucket/prefix or a local directory
    REMOTE_DESTINATION = os.environ.get('REMOTE_DESTINATION') or 'gdrive_backups:PostgreSQL_Backups'

    # Retention (days)
    RETENTION_DAYS = int(os.environ.get('RETENTION_DAYS', 7))


class DevelopmentConfig(Config):
    """Development configuration"""

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    BACKUP_DIR = os.path.join(DATA_DIR, 'backups')
    LOG_FILE = os.path.join(DATA_DIR, 'pg_backup.log')
    LOCK_FILE = os.path.join(DATA_DIR, '.pg_backup.lock')
    REMOTE_DESTINATION = os.path.join(DATA_DIR, 'remote')

    # Run tools as the invoking user
    USE_SUDO = False


class ProductionConfig(Config):
    """Production configuration"""
    pass


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}


def get_config(config_name=None):
    """Return the configuration class selected by name or PGBACKUP_ENV."""
    if config_name is None:
        config_name = os.environ.get('PGBACKUP_ENV', 'production')
    return config.get(config_name, config['default'])
