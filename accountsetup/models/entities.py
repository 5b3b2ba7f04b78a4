from dataclasses import dataclass
from typing import Any, Dict, Mapping


def normalize_email(email: str) -> str:
    """Emails are compared and stored lowercase."""
    return email.lower()


def _require_str(d: Mapping[str, Any], key: str) -> str:
    value = d.get(key)
    if not isinstance(value, str):
        raise ValueError(f"Field '{key}' must be a string")
    return value


def _require_mapping(d: Any) -> Mapping[str, Any]:
    if not isinstance(d, Mapping):
        raise ValueError(f"Expected a JSON object, got {type(d).__name__}")
    return d


@dataclass
class UserProfile:
    """Credential projection without the password, handed to the UI layer."""
    email: str
    first_name: str
    last_name: str
    phone_number: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phoneNumber": self.phone_number,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "UserProfile":
        """Create UserProfile from a decoded JSON object.

        Raises:
            ValueError: If a field is missing or not a string
        """
        d = _require_mapping(d)
        return cls(
            email=normalize_email(_require_str(d, "email")),
            first_name=_require_str(d, "firstName"),
            last_name=_require_str(d, "lastName"),
            phone_number=_require_str(d, "phoneNumber"),
        )


@dataclass
class Credential:
    """Registered account, stored encrypted in the credentials slot."""
    email: str
    password: str
    first_name: str
    last_name: str
    phone_number: str

    def __post_init__(self) -> None:
        self.email = normalize_email(self.email)

    def matches_email(self, email: str) -> bool:
        return self.email == normalize_email(email)

    def to_profile(self) -> UserProfile:
        return UserProfile(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            phone_number=self.phone_number,
        )

    def to_dict(self) -> Dict[str, str]:
        """Convert to the persisted JSON shape."""
        return {
            "email": self.email,
            "password": self.password,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phoneNumber": self.phone_number,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "Credential":
        """Create Credential from a decoded JSON object.

        Raises:
            ValueError: If a field is missing or not a string
        """
        d = _require_mapping(d)
        return cls(
            email=_require_str(d, "email"),
            password=_require_str(d, "password"),
            first_name=_require_str(d, "firstName"),
            last_name=_require_str(d, "lastName"),
            phone_number=_require_str(d, "phoneNumber"),
        )


@dataclass
class Session:
    """The single active session. The timestamp is milliseconds since epoch."""
    email: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, d: Any) -> "Session":
        d = _require_mapping(d)
        timestamp = d.get("timestamp")
        # bool is an int subclass, reject it explicitly
        if not isinstance(timestamp, int) or isinstance(timestamp, bool):
            raise ValueError("Field 'timestamp' must be an integer")
        return cls(
            email=normalize_email(_require_str(d, "email")),
            timestamp=timestamp,
        )


@dataclass
class SignupDraft:
    """Partially entered signup form. Password fields are never kept."""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone_number: str = ""

    def is_empty(self) -> bool:
        return not (self.email or self.first_name or self.last_name or self.phone_number)

    def to_dict(self) -> Dict[str, str]:
        return {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phoneNumber": self.phone_number,
        }

    @classmethod
    def from_dict(cls, d: Any) -> "SignupDraft":
        d = _require_mapping(d)
        return cls(
            email=str(d.get("email") or ""),
            first_name=str(d.get("firstName") or ""),
            last_name=str(d.get("lastName") or ""),
            phone_number=str(d.get("phoneNumber") or ""),
        )


@dataclass
class SignupForm:
    """Submitted signup form values."""
    email: str
    password: str
    confirm_password: str
    first_name: str
    last_name: str
    phone_number: str

    def to_draft(self) -> SignupDraft:
        return SignupDraft(
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            phone_number=self.phone_number,
        )
