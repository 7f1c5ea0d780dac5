"""In-memory state machine behind the single image generation page."""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections import OrderedDict
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, Request

from .aiservices.geminiimagegenerationclient import GeminiImageGenerationClient
from .aiservices.imagegenerationclient import GenerationError, ImageGenerationClient
from .config import get_settings
from .schemas import DEFAULT_ASPECT_RATIO, AspectRatio, GenerationRequest

logger = logging.getLogger(__name__)

EMPTY_PROMPT_MESSAGE = "Please enter a description for the image."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
MAX_SESSIONS = 1000


@dataclass
class ViewState:
    """Everything the page needs to render itself."""

    prompt: str = ""
    aspect_ratio: AspectRatio = DEFAULT_ASPECT_RATIO
    image_data: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_prompt(prompt: str) -> Optional[str]:
    """Return the validation message for ``prompt``, or None when it is usable."""
    if not prompt.strip():
        return EMPTY_PROMPT_MESSAGE
    return None


class GenerationView:
    """Owns :class:`ViewState` and drives the image client on submit.

    Edits are applied immediately, even while a request is in flight. Each
    submit captures the prompt and aspect ratio at submit time and takes a new
    sequence number; only the latest request may write its result back.
    """

    def __init__(self, client: ImageGenerationClient, state: ViewState | None = None) -> None:
        self._client = client
        self.state = state or ViewState()
        self._sequence = 0
        self._pending: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # User input
    # ------------------------------------------------------------------
    def set_prompt(self, prompt: str) -> None:
        self.state.prompt = prompt

    def set_aspect_ratio(self, aspect_ratio: AspectRatio | str) -> None:
        self.state.aspect_ratio = AspectRatio(aspect_ratio)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    async def submit(self) -> None:
        started = self._begin()
        if started is not None:
            await self._resolve(*started)

    def start_submit(self) -> Optional[asyncio.Task]:
        """Validate and enter Loading now, then await the client in a background task.

        Must be called from a running event loop. The task is kept referenced
        until it finishes.
        """
        started = self._begin()
        if started is None:
            return None

        task = asyncio.create_task(self._resolve(*started))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def _begin(self) -> Optional[tuple[int, GenerationRequest]]:
        message = validate_prompt(self.state.prompt)
        if message is not None:
            logger.debug("Rejected submission with empty prompt")
            self.state.error = message
            self.state.image_data = None
            return None

        request = GenerationRequest(prompt=self.state.prompt, aspect_ratio=self.state.aspect_ratio)
        self._sequence += 1

        self.state.is_loading = True
        self.state.error = None
        self.state.image_data = None
        return self._sequence, request

    async def _resolve(self, sequence: int, request: GenerationRequest) -> None:
        try:
            image_data = await self._client.generate(request.prompt, request.aspect_ratio)
        except GenerationError as exc:
            self._apply(sequence, error=str(exc))
        except Exception:
            logger.exception("Unexpected failure while generating image")
            self._apply(sequence, error=UNKNOWN_ERROR_MESSAGE)
        else:
            self._apply(sequence, image_data=image_data)
        finally:
            # Cancellation skips every branch above.
            if sequence == self._sequence and self.state.is_loading:
                logger.info("Request %s ended without a result", sequence)
                self.state.is_loading = False

    def _apply(self, sequence: int, image_data: Optional[str] = None, error: Optional[str] = None) -> None:
        if sequence != self._sequence:
            logger.debug("Discarding stale result of request %s (latest is %s)", sequence, self._sequence)
            return

        self.state.image_data = image_data
        self.state.error = error
        self.state.is_loading = False


class ViewRegistry:
    """One :class:`GenerationView` per browser session.

    A session without a view (a new browser, or one this process has never
    seen) starts from a fresh Idle state. The least recently used sessions
    are dropped beyond ``max_sessions``.
    """

    def __init__(self, client: ImageGenerationClient, max_sessions: int = MAX_SESSIONS) -> None:
        self._client = client
        self._max_sessions = max_sessions
        self._views: OrderedDict[str, GenerationView] = OrderedDict()

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(16)

    def get(self, session_id: str) -> GenerationView:
        view = self._views.get(session_id)
        if view is None:
            view = GenerationView(self._client)
            self._views[session_id] = view
            logger.debug("Started view for new session (%d active)", len(self._views))
            while len(self._views) > self._max_sessions:
                self._views.popitem(last=False)
        else:
            self._views.move_to_end(session_id)
        return view

    def __len__(self) -> int:
        return len(self._views)


@lru_cache
def get_view_registry() -> ViewRegistry:
    return ViewRegistry(GeminiImageGenerationClient(get_settings()))


def get_generation_view(
    request: Request,
    registry: ViewRegistry = Depends(get_view_registry),
) -> GenerationView:
    return registry.get(request.state.session_id)
