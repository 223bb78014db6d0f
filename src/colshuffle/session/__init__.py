import logging
import os
from typing import Optional

from dotenv import load_dotenv, find_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, URL
from sqlalchemy.exc import SQLAlchemyError

from colshuffle.exceptions import (
    CredentialsError,
    DatabaseConnectionError,
    DatabaseNotFoundError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Credentials
# ============================================================================

DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 3306


class Credentials:
    """
    MySQL connection parameters.

    Either user/password/host/port from the environment (or a .env file),
    or a MySQL option file with a [client] group that the driver reads
    itself. The password is kept out of repr() and of any error text.
    """

    def __init__(self, user: Optional[str] = None, password: Optional[str] = None,
                 host: Optional[str] = None, port: Optional[int] = None,
                 option_file: Optional[str] = None):
        self.user = user
        self.password = password
        self.host = host
        self.port = port
        self.option_file = option_file

    def __repr__(self):
        return (f"Credentials(user={self.user!r}, password={'***' if self.password else None}, "
                f"host={self.host!r}, port={self.port!r}, option_file={self.option_file!r})")

    @property
    def display(self) -> str:
        """user@host:port, for progress output."""
        if self.user:
            return f"{self.user}@{self.host or DEFAULT_HOST}:{self.port or DEFAULT_PORT}"
        return f"[client] profile in {self.option_file}"

    def scrub(self, message: str) -> str:
        """Remove the password from a message before it is shown or logged."""
        if self.password:
            return message.replace(self.password, '***')
        return message

    def url(self, database: Optional[str] = None) -> URL:
        return URL.create(
            'mysql+pymysql',
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=database,
        )

    def connect_args(self) -> dict:
        if self.option_file:
            return {'read_default_file': self.option_file, 'read_default_group': 'client'}
        return {}


def load_credentials(env_file: Optional[str] = None,
                     option_file: Optional[str] = None) -> Credentials:
    """
    Load connection credentials.

    Looks for, in order:
        an explicit MySQL option file (argument or DB_OPTION_FILE)
        DB_USER / DB_PASSWORD / DB_HOST / DB_PORT from the environment,
        after loading a .env file (explicit path or the nearest one found)

    Raises:
        CredentialsError: if neither source is available or values are invalid
    """
    if env_file is not None:
        if not os.path.exists(env_file):
            raise CredentialsError(f"Environment file not found: {env_file}")
        load_dotenv(env_file)
        logger.debug(f"Loaded environment from {env_file}")
    else:
        found = find_dotenv(usecwd=True)
        if found:
            load_dotenv(found)
            logger.debug(f"Loaded environment from {found}")

    option_file = option_file or os.getenv('DB_OPTION_FILE')
    if option_file and not os.path.exists(option_file):
        raise CredentialsError(f"MySQL option file not found: {option_file}")

    user = os.getenv('DB_USER')
    if not user and not option_file:
        raise CredentialsError(
            "No database credentials found. Set DB_USER/DB_PASSWORD/DB_HOST/DB_PORT "
            "in .env or the environment, or pass a MySQL option file with --defaults-file"
        )

    port = os.getenv('DB_PORT')
    if port is not None and port != '':
        try:
            port = int(port)
        except ValueError:
            raise CredentialsError(f"DB_PORT must be an integer, got {port!r}")
    else:
        port = None

    host = os.getenv('DB_HOST') or None
    if not option_file:
        host = host or DEFAULT_HOST
        port = port or DEFAULT_PORT

    return Credentials(
        user=user or None,
        password=os.getenv('DB_PASSWORD'),
        host=host,
        port=port,
        option_file=option_file,
    )


# ============================================================================
# Engine and probes
# ============================================================================

def create_shuffle_engine(credentials: Credentials, database: Optional[str] = None,
                          echo: bool = False, connect_timeout: Optional[int] = None) -> Engine:
    """
    Create a SQLAlchemy engine for the MySQL server.

    Args:
        credentials: Connection parameters
        database: Default database for the connection (None = server only)
        echo: Log all SQL statements
        connect_timeout: Seconds to wait for the TCP connection
    """
    connect_args = credentials.connect_args()
    if connect_timeout is not None:
        connect_args['connect_timeout'] = connect_timeout

    engine = create_engine(
        credentials.url(database),
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args=connect_args,
    )
    logger.debug(f"Created engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def check_connection(engine: Engine, credentials: Credentials):
    """
    Probe the server with SELECT 1.

    Raises:
        DatabaseConnectionError: if the probe fails
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        reason = credentials.scrub(str(getattr(e, 'orig', None) or e))
        raise DatabaseConnectionError(
            f"MySQL connection failed for {credentials.display}: {reason}"
        )
    logger.info(f"Connected to MySQL as {credentials.display}")


def check_database(engine: Engine, database: str, credentials: Credentials):
    """
    Confirm that ``database`` exists and is visible to the connecting user.

    Raises:
        DatabaseNotFoundError: if it is missing, inaccessible, or the lookup fails
    """
    if not database:
        raise DatabaseNotFoundError("No database name given")

    try:
        with engine.connect() as conn:
            found = conn.execute(
                text("SELECT SCHEMA_NAME FROM information_schema.SCHEMATA WHERE SCHEMA_NAME = :database"),
                {'database': database},
            ).first()
    except SQLAlchemyError as e:
        reason = credentials.scrub(str(getattr(e, 'orig', None) or e))
        raise DatabaseNotFoundError(f"Database '{database}' could not be checked: {reason}")

    if found is None:
        raise DatabaseNotFoundError(f"Database '{database}' doesn't exist or access denied")
    logger.info(f"Database '{database}' found")
