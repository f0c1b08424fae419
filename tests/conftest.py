import pytest
from fastapi.testclient import TestClient

from skillswap.core.config import Settings
from skillswap.core.container import build_container
from skillswap.core.database import MemoryDatabase
from skillswap.main import create_app
from skillswap.schemas.swap import SkillDescriptor, SwapCreate
from skillswap.schemas.user import Role, UserCreate
from skillswap.services.notification_service import Notifier

class RecordingNotifier(Notifier):
    """Keeps outbound messages in memory; can be told to fail every send."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to, subject, body):
        if self.fail:
            raise ConnectionError("SMTP server unavailable")
        self.sent.append({"to": to, "subject": subject, "body": body})

@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_backend="memory",
        password_schemes=["pbkdf2_sha256"],
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret="test-secret",
        smtp_host="",
    )

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest.fixture
def container(settings, notifier):
    return build_container(settings, MemoryDatabase(), notifier)

@pytest.fixture
def make_user(container):
    counter = {"n": 0}

    async def _make(name=None, role=Role.USER, **profile):
        counter["n"] += 1
        name = name or f"User {counter['n']}"
        email = f"{name.lower().replace(' ', '.')}.{counter['n']}@skillswap.io"
        user = await container.users.create(
            UserCreate(name=name, email=email, password="secret123", location=profile.pop("location", None)),
            role=role,
        )
        if profile:
            user = await container.user_repository.update(user["id"], profile)
        return user

    return _make

def swap_request(recipient_id, offered="Guitar", requested="Spanish", **extra):
    return SwapCreate(
        recipient_id=recipient_id,
        skill_offered=SkillDescriptor(name=offered),
        skill_requested=SkillDescriptor(name=requested),
        **extra,
    )

@pytest.fixture
def completed_swap(container):
    async def _complete(requester, recipient):
        swap = await container.swaps.create(requester, swap_request(recipient["id"]))
        await container.swaps.accept(swap["id"], recipient["id"])
        return await container.swaps.complete(swap["id"], requester["id"])

    return _complete

@pytest.fixture
def client(container):
    app = create_app(container)
    with TestClient(app) as test_client:
        yield test_client
