import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_BASE_URL = "http://169.254.169.254/latest"
MAX_TOKEN_TTL = 21600


@dataclass
class ReportConfig:
    """
    Settings for the metadata report.

    Attributes:
        base_url (str): Metadata service root, without the trailing /meta-data.
        timeout (float): Per-request timeout in seconds.
        token_ttl (int): Lifetime requested for the IMDSv2 session token.
        host (str): Interface the report server binds to.
        port (int): Port the report server listens on.
        log_level (str): Name of the logging level.
    """
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 2.0
    token_ttl: int = MAX_TOKEN_TTL
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"

    def __post_init__(self):
        self.base_url = self.base_url.rstrip('/')
        if self.timeout <= 0:
            raise ValueError(f"METADATA_TIMEOUT must be positive, got {self.timeout}")
        if not 0 < self.token_ttl <= MAX_TOKEN_TTL:
            raise ValueError(
                f"METADATA_TOKEN_TTL must be between 1 and {MAX_TOKEN_TTL}, got {self.token_ttl}"
            )
        self.log_level = self.log_level.upper()
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"Invalid value for LOG_LEVEL: {self.log_level!r}")

    @classmethod
    def from_env(cls):
        """
        Loads variables from .env (if present) and the process environment.

        Returns:
            ReportConfig: The resulting configuration.

        Raises:
            ValueError: If a numeric variable cannot be parsed or is out of range.
        """
        load_dotenv()

        return cls(
            base_url=os.getenv('METADATA_BASE_URL', DEFAULT_BASE_URL),
            timeout=_parse('METADATA_TIMEOUT', float, 2.0),
            token_ttl=_parse('METADATA_TOKEN_TTL', int, MAX_TOKEN_TTL),
            host=os.getenv('REPORT_HOST', '0.0.0.0'),
            port=_parse('REPORT_PORT', int, 5000),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
        )


def _parse(name: str, cast, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None
