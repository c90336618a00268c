"""Shared fakes: an in-memory remote backend, its clients and a scripted prompter."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from tgmcp.client.base import (
    AppCredentials,
    Dialog,
    FreshLogin,
    Message,
    MessagePreview,
    RemoteClient,
    ResumeOnly,
    Sender,
    SentMessage,
)
from tgmcp.errors import (
    CodeExpiredError,
    InvalidCodeError,
    InvalidPasswordError,
    PromptUnavailableError,
    TransportError,
)
from tgmcp.prompt.base import Prompter
from tgmcp.session import (
    Authenticator,
    ConnectionPool,
    SessionManager,
    SessionRecordStore,
)

CREDS = AppCredentials(api_id=12345, api_hash="0123456789abcdef")


class FakeBackend:
    """Simulated Telegram backend shared by every FakeClient it creates."""

    def __init__(
        self,
        code: str = "11111",
        password: str | None = None,
        accepted_tokens: tuple[str, ...] = (),
        resume_error: Exception | None = None,
    ):
        self.code = code
        self.password = password
        self.accepted_tokens = set(accepted_tokens)
        self.resume_error = resume_error
        self.expire_codes = 0
        self.clients: list[FakeClient] = []
        self.code_requests: list[str] = []
        self.calls: list[tuple[str, Any]] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.connect_delay = 0.0
        self.issued = 0

    def factory(self, mode) -> "FakeClient":
        client = FakeClient(self, mode)
        self.clients.append(client)
        return client

    @property
    def fresh_clients(self) -> list["FakeClient"]:
        return [c for c in self.clients if isinstance(c.mode, FreshLogin)]


class FakeClient(RemoteClient):
    def __init__(self, backend: FakeBackend, mode):
        super().__init__(mode)
        self.backend = backend
        self.connected = False
        self.authorized = False
        self.disconnected = False
        self.token: str | None = None

    async def connect(self) -> None:
        if self.backend.connect_delay:
            await asyncio.sleep(self.backend.connect_delay)
        if isinstance(self.mode, ResumeOnly):
            gate = self.backend.gates.get(self.mode.token)
            if gate is not None:
                await gate.wait()
            if self.backend.resume_error is not None:
                raise self.backend.resume_error
            self.authorized = self.mode.token in self.backend.accepted_tokens
            self.token = self.mode.token
        self.connected = True

    async def disconnect(self) -> None:
        self.connected = False
        self.disconnected = True

    async def is_authenticated(self) -> bool:
        return self.connected and self.authorized

    async def request_code(self, identifier: str) -> None:
        self.backend.code_requests.append(identifier)

    async def submit_code(self, identifier: str, code: str) -> bool:
        await asyncio.sleep(0)
        if self.backend.expire_codes:
            self.backend.expire_codes -= 1
            raise CodeExpiredError("PHONE_CODE_EXPIRED")
        if code != self.backend.code:
            raise InvalidCodeError("PHONE_CODE_INVALID")
        if self.backend.password is not None:
            return True
        self._issue_token()
        return False

    async def submit_password(self, password: str) -> None:
        await asyncio.sleep(0)
        if password != self.backend.password:
            raise InvalidPasswordError("PASSWORD_HASH_INVALID")
        self._issue_token()

    def _issue_token(self) -> None:
        self.backend.issued += 1
        self.token = f"token-{self.backend.issued}"
        self.backend.accepted_tokens.add(self.token)
        self.authorized = True

    def export_token(self) -> str:
        return self.token or ""

    async def invoke(self, method: str, params: dict[str, Any]) -> Any:
        self.backend.calls.append(("invoke", (method, params)))
        return {"_": "Config", "this_dc": 2, "date": None}

    async def fetch_dialogs(self, limit: int) -> list[Dialog]:
        self.backend.calls.append(("fetch_dialogs", limit))
        return [
            Dialog(
                id="777",
                name="Durov",
                type="user",
                unread_count=3,
                last_message=MessagePreview(text="hi", date="2024-01-01T00:00:00+00:00", from_me=False),
            )
        ]

    async def fetch_messages(self, chat_id: str, limit: int) -> list[Message]:
        self.backend.calls.append(("fetch_messages", (chat_id, limit)))
        return [
            Message(
                id="1",
                text="hello",
                date="2024-01-01T00:00:00+00:00",
                from_me=True,
                sender=Sender(id="42", username="me", first_name="Me"),
            )
        ]

    async def send_message(self, chat_id: str, text: str) -> SentMessage:
        self.backend.calls.append(("send_message", (chat_id, text)))
        return SentMessage(message_id="99", date="2024-01-01T00:00:00+00:00")


class ScriptedPrompter(Prompter):
    """Returns queued answers in order; records every label it was asked."""

    def __init__(self, answers: list[str] | None = None):
        self.answers = list(answers or [])
        self.asked: list[str] = []

    async def request_text(self, label: str) -> str:
        self.asked.append(label)
        await asyncio.sleep(0)
        if not self.answers:
            raise PromptUnavailableError(f"no scripted answer for {label!r}")
        return self.answers.pop(0)


def build_manager(
    store: SessionRecordStore,
    backend: FakeBackend,
    prompter: Prompter | None = None,
    credentials: AppCredentials | None = CREDS,
    max_password_attempts: int = 3,
) -> SessionManager:
    pool = ConnectionPool()
    authenticator = Authenticator(
        store=store,
        pool=pool,
        client_factory=backend.factory,
        prompter=prompter or ScriptedPrompter(),
        credentials=credentials,
        max_password_attempts=max_password_attempts,
    )
    return SessionManager(store, pool, authenticator)


@pytest.fixture
def store(tmp_path) -> SessionRecordStore:
    return SessionRecordStore(tmp_path / "sessions")


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def transport_error() -> TransportError:
    return TransportError("Connection failure: network unreachable")
