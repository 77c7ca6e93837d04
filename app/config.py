# app/config.py

import os


class Config:
    # Flask Secret Key
    SECRET_KEY = os.getenv('SECRET_KEY', 'your_secret_key')

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URI',
        'postgresql://postgres:postgres@db:5432/parking_db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Database connection pool configuration
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,       # Validate connections before using
        "pool_recycle": 1800,        # Recycle every 30 minutes
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "connect_args": {
            "connect_timeout": 10,
            "options": "-c statement_timeout=30000"  # 30s query timeout
        }
    }

    # Mail Configuration
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() in ("true", "1", "t")
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "false").lower() in ("true", "1", "t")
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", "no-reply@smartparking.local")
    MAIL_SUPPRESS_SEND = os.getenv("MAIL_SUPPRESS_SEND", "false").lower() in ("true", "1", "t")
    # Send confirmation mails from a background thread
    MAIL_ASYNC = os.getenv("MAIL_ASYNC", "true").lower() in ("true", "1", "t")

    # Redis Configuration (slot locks when SLOT_LOCK_BACKEND=redis)
    REDIS_URL = os.getenv('REDIS_URL')
    REDIS_TLS_ENABLED = os.getenv('REDIS_TLS_ENABLED', 'false').lower() == 'true'

    # Per-slot serialization
    SLOT_LOCK_BACKEND = os.getenv('SLOT_LOCK_BACKEND', 'local')  # local | redis
    SLOT_LOCK_TIMEOUT_SECONDS = int(os.getenv('SLOT_LOCK_TIMEOUT_SECONDS', 30))
    SLOT_LOCK_WAIT_SECONDS = float(os.getenv('SLOT_LOCK_WAIT_SECONDS', 5))

    # Expiry sweeper
    EXPIRY_SWEEP_ENABLED = os.getenv('EXPIRY_SWEEP_ENABLED', 'true').lower() == 'true'
    EXPIRY_SWEEP_INTERVAL_SECONDS = int(os.getenv('EXPIRY_SWEEP_INTERVAL_SECONDS', 300))

    # Facility
    FACILITY_NAME = os.getenv('FACILITY_NAME', 'Smart Parking')
    FACILITY_TIMEZONE = os.getenv('FACILITY_TIMEZONE', 'Africa/Windhoek')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            'CORS_ORIGINS',
            'http://localhost:3000,http://127.0.0.1:3000,http://127.0.0.1:3001'
        ).split(',')
        if origin.strip()
    ]


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}

    MAIL_SUPPRESS_SEND = True
    MAIL_ASYNC = False

    SLOT_LOCK_BACKEND = 'local'
    SLOT_LOCK_WAIT_SECONDS = 1
    EXPIRY_SWEEP_ENABLED = False
    FACILITY_TIMEZONE = 'UTC'
