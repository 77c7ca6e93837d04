# db/extensions.py

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_mail import Mail
import redis
from redis.connection import ConnectionPool, SSLConnection
import urllib.parse
import logging

db = SQLAlchemy()
migrate = Migrate()
mail = Mail()

logger = logging.getLogger(__name__)


def create_redis_pool(redis_url, use_tls=False):
    """
    Create a Redis connection pool shared by every slot lock.
    Falls back to a local instance when no URL is configured.
    """
    if redis_url:
        parsed = urllib.parse.urlparse(redis_url)

        pool_kwargs = {
            'host': parsed.hostname,
            'port': parsed.port or 6379,
            'username': parsed.username,
            'password': parsed.password,
            'decode_responses': True,
            'socket_connect_timeout': 10,
            'socket_timeout': 5,
            'socket_keepalive': True,
            'retry_on_timeout': True,
            'health_check_interval': 30,
            'max_connections': 50,
        }

        if use_tls or parsed.scheme == 'rediss':
            pool_kwargs.update({
                'connection_class': SSLConnection,
                'ssl_cert_reqs': None,
                'ssl_check_hostname': False,
            })
            logger.info("✅ Redis pool with SSL/TLS enabled")

        pool = ConnectionPool(**pool_kwargs)
        logger.info(f"✅ Redis connection pool created: {parsed.hostname}")
        return pool

    logger.info("🔧 Local Redis pool")
    return ConnectionPool(
        host='localhost',
        port=6379,
        db=0,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        max_connections=20,
    )


def create_redis_client(app):
    """Build a Redis client from the app config."""
    pool = create_redis_pool(
        app.config.get('REDIS_URL'),
        use_tls=app.config.get('REDIS_TLS_ENABLED', False),
    )
    client = redis.Redis(connection_pool=pool)

    # Pre-warm the pool; a failure here is retried on first use
    try:
        client.ping()
        logger.info("✅ Redis connection pool ready")
    except redis.exceptions.RedisError as e:
        logger.warning(f"⚠️  Redis pre-warm failed (will retry on first lock): {str(e)}")
    return client


def check_redis_health(client):
    """Check Redis connection health"""
    try:
        client.ping()
        return True
    except redis.exceptions.RedisError as e:
        logger.error(f"❌ Redis health check failed: {str(e)}")
        return False
