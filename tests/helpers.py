from datetime import datetime, timezone

from clinic_api.core.security import Actor, create_access_token
from clinic_api.models.user import User

# A Monday
DAY = datetime(2026, 11, 2, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: datetime = DAY) -> datetime:
    return day.replace(hour=hour, minute=minute)


def actor_for(user: User) -> Actor:
    return Actor(id=user.id, role=user.role)


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(subject=user.id, role=user.role.value)
    return {"Authorization": f"Bearer {token}"}


def lab_test_payload(test_code: str = "NFS", price: float | None = 100.0) -> dict:
    return {
        "test_code": test_code,
        "test_name": f"Test {test_code}",
        "category": "Hématologie",
        "specimen_type": "Sang",
        "price": price,
    }


def medication_payload(name: str = "Amoxicilline") -> dict:
    return {
        "name": name,
        "dosage": "500mg",
        "frequency": "every 8 hours",
        "duration": "7 days",
    }
