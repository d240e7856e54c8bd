"""
Data models for the BFI calendar crawler.

Defines Pydantic models for screening events, per-film crawl outcomes and the
aggregate report of a whole run.
"""

from datetime import datetime
from enum import Enum
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator

from bfi_calendar.exceptions import SeedCrawlFailed


class EventCandidate(BaseModel):
    """
    One screening of a film, ready to become a calendar entry.

    Title, description and runtime come from the film page and are shared by
    every screening found on it; start, location and availability come from
    one row of the embedded search results.
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Film title from the page heading")

    description: str = Field(default="", description="Short film description")

    start: datetime = Field(..., description="Local start time of the screening")

    end: datetime = Field(..., description="Start plus runtime; equal to start if unknown")

    location: str = Field(default="", description="Venue/screen name")

    sold_out: bool = Field(default=False, description="True unless tickets are known to be available")

    url: Optional[str] = Field(
        default=None,
        description="Film page the screening was found through"
    )

    @model_validator(mode="after")
    def validate_end_not_before_start(self) -> "EventCandidate":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    @property
    def calendar_description(self) -> str:
        """Description as shown in the calendar, flagged when sold out."""
        prefix = "[sold out] " if self.sold_out else ""
        return f"{prefix}{self.description}"


class WorkerState(str, Enum):
    """States of the per-film crawl state machine."""

    START = "start"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    FOLLOWING = "following"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WorkerState.DONE, WorkerState.FAILED)


class CrawlOutcome(BaseModel):
    """Result of crawling one film's chain of result pages."""

    seed: str = Field(..., description="First page of the chain")

    state: WorkerState = Field(..., description="Terminal worker state")

    events: int = Field(default=0, ge=0, description="Events forwarded to the sink")

    pages: int = Field(default=0, ge=0, description="Pages fully extracted")

    failed_locator: Optional[str] = Field(
        default=None,
        description="Page being processed when the worker failed"
    )

    error: Optional[str] = Field(default=None, description="Failure message")

    error_type: Optional[str] = Field(default=None, description="Failure class name")

    truncated: bool = Field(
        default=False,
        description="Chain stopped at the page limit while more pages were announced"
    )

    @field_validator("state")
    @classmethod
    def validate_state_is_terminal(cls, v: WorkerState) -> WorkerState:
        if not v.is_terminal:
            raise ValueError(f"outcome state must be done or failed, got {v.value}")
        return v

    @property
    def failed(self) -> bool:
        return self.state is WorkerState.FAILED


class CrawlReport(BaseModel):
    """
    Summary of a crawl run.

    Keeps every per-film outcome, so events already emitted by a film whose
    later page failed are still accounted for.
    """

    started_at: datetime = Field(..., description="When the run started")

    completed_at: Optional[datetime] = Field(default=None, description="When the run completed")

    success: bool = Field(default=False, description="Whether every film crawled cleanly")

    outcomes: List[CrawlOutcome] = Field(
        default_factory=list,
        description="Per-film outcomes in seed order"
    )

    errors: List[str] = Field(
        default_factory=list,
        description="Human-readable failure lines, one per failed film"
    )

    @property
    def duration_seconds(self) -> Optional[float]:
        """Calculate run duration in seconds."""
        if not self.completed_at:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def events_total(self) -> int:
        return sum(outcome.events for outcome in self.outcomes)

    @property
    def pages_total(self) -> int:
        return sum(outcome.pages for outcome in self.outcomes)

    @property
    def failures(self) -> List[CrawlOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    @property
    def first_failure(self) -> Optional[CrawlOutcome]:
        failures = self.failures
        return failures[0] if failures else None

    def add_outcome(self, outcome: CrawlOutcome) -> None:
        """Record one film's outcome, tracking failures."""
        self.outcomes.append(outcome)
        if outcome.failed:
            self.errors.append(
                f"{outcome.seed} failed at {outcome.failed_locator}: "
                f"{outcome.error_type}: {outcome.error}"
            )

    def finish(self) -> None:
        self.completed_at = datetime.now()
        self.success = not self.failures

    def raise_for_failure(self) -> None:
        """Raise ``SeedCrawlFailed`` for the first failed film, if any."""
        failure = self.first_failure
        if failure is not None:
            raise SeedCrawlFailed(
                failure.seed,
                failure.failed_locator,
                f"{failure.error_type}: {failure.error}",
            )

    def model_dump_metrics(self) -> dict:
        """Export run metrics as a flat dict for logging."""
        return {
            "crawl_duration_seconds": self.duration_seconds or 0,
            "films_total": len(self.outcomes),
            "films_failed": len(self.failures),
            "films_truncated": sum(1 for o in self.outcomes if o.truncated),
            "pages_total": self.pages_total,
            "events_total": self.events_total,
            "crawl_success": 1 if self.success else 0,
        }
