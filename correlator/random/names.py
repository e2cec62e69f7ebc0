"""
Value Generator

Generates the realistic values that fill supporting logs and alerts:
hosts, users, IP addresses, ports, hashes, process ids and identifiers.
Every value is drawn from one injected ``random.Random``.
"""

import random
import uuid
from typing import List, Optional, Tuple


class NameGenerator:
    """Generates realistic values for log and alert fields."""

    FIRST_NAMES = [
        "James", "John", "Robert", "Michael", "William", "David", "Richard", "Joseph",
        "Mary", "Patricia", "Jennifer", "Linda", "Elizabeth", "Barbara", "Susan",
        "Jessica", "Sarah", "Karen", "Emily", "Hannah", "Sophia", "Olivia",
        "Alex", "Taylor", "Jordan", "Morgan", "Casey", "Riley", "Jamie", "Quinn",
    ]

    LAST_NAMES = [
        "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
        "Rodriguez", "Martinez", "Wilson", "Anderson", "Thomas", "Taylor", "Moore",
        "Jackson", "Martin", "Lee", "Thompson", "White", "Harris", "Clark", "Lewis",
        "Walker", "Young", "Allen", "King", "Wright", "Scott", "Nguyen", "Hill",
    ]

    HOST_PREFIXES = {
        "workstation": ["WS", "PC", "DESKTOP", "LAPTOP"],
        "domain_controller": ["DC", "ADC"],
        "file_server": ["FS", "FILE", "NAS"],
        "web_server": ["WEB", "SRV-WEB"],
        "database_server": ["DB", "SQL"],
        "mail_server": ["MAIL", "EXCH"],
        "generic": ["SRV", "APP"],
    }

    C2_DOMAIN_PARTS = [
        "update", "cdn", "api", "static", "content", "sync", "cloud",
        "service", "gateway", "analytics", "secure", "data", "assets",
    ]

    C2_TLDS = ["com", "net", "io", "org", "co", "online"]

    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        """
        Initialize generator.

        Args:
            seed: Random seed for reproducibility (ignored when rng is given)
            rng: Shared random generator to draw from
        """
        self.rng = rng if rng is not None else random.Random(seed)

    # ------------------------------------------------------------
    # Identities
    # ------------------------------------------------------------

    def generate_username(self, style: str = "first.last") -> Tuple[str, str, str]:
        """
        Generate a username with display name parts.

        Args:
            style: Username style (first.last, flast, firstl)

        Returns:
            Tuple of (username, first_name, last_name)
        """
        first = self.rng.choice(self.FIRST_NAMES)
        last = self.rng.choice(self.LAST_NAMES)

        if style == "flast":
            username = f"{first[0].lower()}{last.lower()}"
        elif style == "firstl":
            username = f"{first.lower()}{last[0].lower()}"
        else:
            username = f"{first.lower()}.{last.lower()}"

        return username, first, last

    def username(self) -> str:
        return self.generate_username()[0]

    def generate_hostname(self, role: str = "workstation", number: Optional[int] = None) -> str:
        """
        Generate a hostname.

        Args:
            role: Host role (workstation, domain_controller, etc.)
            number: Host number; random when omitted

        Returns:
            Hostname string
        """
        prefixes = self.HOST_PREFIXES.get(role, self.HOST_PREFIXES["generic"])
        prefix = self.rng.choice(prefixes)
        if number is None:
            number = self.rng.randint(1, 99)
        return f"{prefix}{str(number).zfill(2)}"

    def hostnames(self, count: int) -> List[str]:
        """Generate ``count`` distinct hostnames, mostly workstations."""
        names: List[str] = []
        roles = ["workstation", "workstation", "file_server", "database_server", "generic"]
        attempts = 0
        while len(names) < count and attempts < count * 50:
            attempts += 1
            name = self.generate_hostname(self.rng.choice(roles))
            if name not in names:
                names.append(name)
        return names

    def usernames(self, count: int) -> List[str]:
        """Generate ``count`` distinct usernames."""
        names: List[str] = []
        attempts = 0
        while len(names) < count and attempts < count * 50:
            attempts += 1
            name = self.username()
            if name not in names:
                names.append(name)
        return names

    # ------------------------------------------------------------
    # Network
    # ------------------------------------------------------------

    def generate_c2_domain(self) -> str:
        """Generate a realistic-looking C2 domain."""
        parts = self.rng.sample(self.C2_DOMAIN_PARTS, 2)
        tld = self.rng.choice(self.C2_TLDS)
        return f"{parts[0]}-{parts[1]}.{tld}"

    def generate_c2_ip(self) -> str:
        """
        Generate a C2 IP from documentation ranges.

        Returns:
            IP address from RFC 5737 ranges
        """
        ranges = [
            (192, 0, 2),
            (198, 51, 100),
            (203, 0, 113),
        ]
        base = self.rng.choice(ranges)
        return f"{base[0]}.{base[1]}.{base[2]}.{self.rng.randint(1, 254)}"

    def generate_internal_ip(self, network: str = "10.0.0.0/24") -> str:
        """Generate an internal IP within a /24 network."""
        parts = network.split("/")[0].split(".")
        return f"{parts[0]}.{parts[1]}.{parts[2]}.{self.rng.randint(10, 254)}"

    def ephemeral_port(self) -> int:
        return self.rng.randint(49152, 65535)

    def port(self, low: int = 1024, high: int = 65535) -> int:
        return self.rng.randint(low, high)

    # ------------------------------------------------------------
    # Host artifacts
    # ------------------------------------------------------------

    def pid(self) -> int:
        return self.rng.randint(1000, 9999)

    def md5(self) -> str:
        return "%032x" % self.rng.getrandbits(128)

    def sha256(self) -> str:
        return "%064x" % self.rng.getrandbits(256)

    def uuid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128), version=4))

    def size(self, low: int = 1024, high: int = 1_000_000) -> int:
        return self.rng.randint(low, high)

    def choice(self, options):
        return self.rng.choice(options)
