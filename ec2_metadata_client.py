import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from ec2_report_config import DEFAULT_BASE_URL, MAX_TOKEN_TTL

# Display label and meta-data path for every attribute on the report, in page order
ATTRIBUTES = (
    ("AMI Id", "ami-id"),
    ("Instance Id", "instance-id"),
    ("Instance Type", "instance-type"),
    ("Instance Action", "instance-action"),
    ("Host Name", "hostname"),
    ("Local Host Name", "local-hostname"),
    ("Public Host Name", "public-hostname"),
    ("Local IPv4", "local-ipv4"),
    ("Public IPv4", "public-ipv4"),
    ("Reservation Id", "reservation-id"),
    ("Profile", "profile"),
    ("Security Groups", "security-groups"),
    ("MAC", "mac"),
)

TOKEN_HEADER = "X-aws-ec2-metadata-token"
TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"


def build_session():
    """Session whose connection pool holds one connection per attribute read in parallel."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=len(ATTRIBUTES))
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


@dataclass(frozen=True)
class Reading:
    label: str
    path: str
    value: Optional[str] = None

    @property
    def available(self):
        return bool(self.value)

    @property
    def display(self):
        return self.value or ""


class MetadataClient:
    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 2.0,
                 token_ttl: int = MAX_TOKEN_TTL, session=None):
        """
        Client for the EC2 Instance Metadata Service (IMDS).

        Args:
            base_url (str): Metadata service root, e.g. http://169.254.169.254/latest
            timeout (float): Timeout in seconds applied to every request.
            token_ttl (int): Lifetime requested for the IMDSv2 token.
            session (requests.Session, optional): HTTP session to issue requests with.
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.token_ttl = token_ttl
        self.session = session or build_session()

    @classmethod
    def from_config(cls, config, session=None):
        return cls(
            base_url=config.base_url,
            timeout=config.timeout,
            token_ttl=config.token_ttl,
            session=session,
        )

    def get_token(self) -> Optional[str]:
        """
        Obtains an IMDSv2 session token.

        Returns:
            str or None: The token, or None when IMDSv2 is unavailable and
            requests should fall back to IMDSv1.
        """
        token_url = f"{self.base_url}/api/token"
        try:
            response = self.session.put(
                token_url,
                headers={TOKEN_TTL_HEADER: str(self.token_ttl)},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logging.warning(f"Failed to retrieve IMDSv2 token, falling back to IMDSv1: {str(e)}")
            return None

        if response.status_code != 200:
            logging.warning(
                f"Failed to retrieve IMDSv2 token (status {response.status_code}), falling back to IMDSv1"
            )
            return None
        return response.text

    def fetch(self, path: str, headers=None) -> Optional[str]:
        """
        Reads a single meta-data path.

        Args:
            path (str): Path below /meta-data/, e.g. "instance-id".
            headers (dict, optional): Extra request headers (the IMDSv2 token).

        Returns:
            str or None: The response body, or None if the read failed or came back empty.
        """
        url = f"{self.base_url}/meta-data/{path}"
        try:
            response = self.session.get(url, headers=headers or {}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logging.warning(f"Error fetching {path}: {str(e)}")
            return None

        if response.status_code != 200:
            logging.warning(f"Error fetching {path}: status {response.status_code}")
            return None
        if not response.text:
            logging.warning(f"Empty response for {path}")
            return None
        return response.text

    def read_all(self):
        """
        Fetches every attribute in ATTRIBUTES.

        Reads run concurrently, each bounded by the client timeout. A failed
        read yields a Reading whose value is None; it never aborts the others.

        Returns:
            list[Reading]: One reading per attribute, in ATTRIBUTES order.
        """
        token = self.get_token()
        headers = {TOKEN_HEADER: token} if token else {}

        with ThreadPoolExecutor(max_workers=len(ATTRIBUTES)) as executor:
            values = list(executor.map(lambda attr: self.fetch(attr[1], headers), ATTRIBUTES))

        readings = [Reading(label, path, value) for (label, path), value in zip(ATTRIBUTES, values)]
        missing = [r.label for r in readings if not r.available]
        if missing:
            logging.info(f"Metadata unavailable for: {', '.join(missing)}")
        return readings
