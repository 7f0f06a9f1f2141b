"""Harvest session: the form-to-result state machine behind the UI.

States: idle -> loading -> success | error (-> idle).

While loading, a ProgressTicker walks a fixed list of progress stages on
its own timer. The stages are cosmetic: they are not tied to what the
harvester is actually doing, and the ticker is stopped as soon as the
harvest finishes or fails.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from retroriff.schemas.harvest import HarvesterResult, HarvestResponse, SearchCriteria
from retroriff.services.packaging import ZIP_THRESHOLD_BYTES, choose_delivery, estimate_total_size

logger = logging.getLogger(__name__)

HARVEST_FAILED_MESSAGE = "Failed to harvest riffs. Please try again."
START_TEXT = "Kicking off the process..."
DONE_TEXT = "Your riffs are ready!"


class HarvestStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressStage:
    percent: int
    text: str


PROGRESS_STAGES: tuple[ProgressStage, ...] = (
    ProgressStage(10, "Warming up the tubes... AI is initializing."),
    ProgressStage(20, "AI is formulating the best search strategy..."),
    ProgressStage(30, "Searching for tracks on YouTube..."),
    ProgressStage(50, "Converting videos to audio..."),
    ProgressStage(70, "Processing audio files..."),
    ProgressStage(80, "Sorting tracks by popularity..."),
    ProgressStage(95, "Calculating total file size..."),
)


@dataclass(frozen=True)
class ProgressUpdate:
    status: HarvestStatus
    percent: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "percent": self.percent, "text": self.text}


class InvalidTransitionError(RuntimeError):
    """Raised when an action is not allowed in the session's current state."""


class HarvestFailedError(RuntimeError):
    """A harvest failed; the message is safe to show to users."""


class ProgressTicker:
    """Advance through progress stages every ``interval`` seconds, then stop."""

    def __init__(
        self,
        on_stage: Callable[[ProgressStage], None],
        interval: float = 1.5,
        stages: tuple[ProgressStage, ...] = PROGRESS_STAGES,
    ) -> None:
        self.on_stage = on_stage
        self.interval = interval
        self.stages = stages
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        for stage in self.stages:
            await asyncio.sleep(self.interval)
            self.on_stage(stage)

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


class HarvestSession:
    def __init__(
        self,
        harvest: Callable[[SearchCriteria], Awaitable[HarvesterResult]],
        progress_interval: float = 1.5,
        on_change: Callable[[ProgressUpdate], None] | None = None,
    ) -> None:
        self._harvest = harvest
        self._on_change = on_change
        self._ticker = ProgressTicker(self._advance, interval=progress_interval)
        self.status = HarvestStatus.IDLE
        self.results: HarvesterResult | None = None
        self.progress = 0
        self.progress_text = ""
        self.total_size = 0.0
        self.error_message: str | None = None

    @property
    def ticker(self) -> ProgressTicker:
        return self._ticker

    @property
    def show_download(self) -> bool:
        return self.status == HarvestStatus.SUCCESS and self.total_size > ZIP_THRESHOLD_BYTES

    @property
    def show_list(self) -> bool:
        return self.status == HarvestStatus.SUCCESS and self.total_size <= ZIP_THRESHOLD_BYTES

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(ProgressUpdate(self.status, self.progress, self.progress_text))

    def _set_progress(self, percent: int, text: str) -> None:
        self.progress = percent
        self.progress_text = text
        self._notify()

    def _advance(self, stage: ProgressStage) -> None:
        if self.status == HarvestStatus.LOADING:
            self._set_progress(stage.percent, stage.text)

    async def submit(self, criteria: SearchCriteria | Mapping[str, Any]) -> HarvestResponse:
        """Run one harvest.

        Criteria with every field empty are rejected (pydantic ValidationError)
        before the harvester is called, leaving the session idle.
        """
        if self.status != HarvestStatus.IDLE:
            raise InvalidTransitionError(f"Cannot submit while {self.status.value}")
        if not isinstance(criteria, SearchCriteria):
            criteria = SearchCriteria.model_validate(criteria)

        self.status = HarvestStatus.LOADING
        self.error_message = None
        self._set_progress(0, START_TEXT)
        self._ticker.start()
        try:
            result = await self._harvest(criteria)
        except Exception as e:
            logger.exception("Harvest failed")
            self.status = HarvestStatus.ERROR
            self.error_message = HARVEST_FAILED_MESSAGE
            self._notify()
            self.reset()
            raise HarvestFailedError(HARVEST_FAILED_MESSAGE) from e
        finally:
            self._ticker.stop()

        self.results = result
        self.total_size = estimate_total_size(result.songs)
        self.status = HarvestStatus.SUCCESS
        self._set_progress(100, DONE_TEXT)
        return self.response()

    def response(self) -> HarvestResponse:
        if self.status != HarvestStatus.SUCCESS or self.results is None:
            raise InvalidTransitionError("No harvest results available")
        return HarvestResponse(
            ai_result=self.results.ai_result,
            songs=self.results.songs,
            total_size_bytes=self.total_size,
            delivery=choose_delivery(self.total_size),
        )

    def reset(self) -> None:
        """Return to idle and clear everything from the previous harvest."""
        self._ticker.stop()
        self.status = HarvestStatus.IDLE
        self.results = None
        self.progress = 0
        self.progress_text = ""
        self.total_size = 0.0
        self._notify()
