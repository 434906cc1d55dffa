"""
Pipeline Base Module
====================
Defines the base class for all ranking stages.

Each stage has a name and description, reads and writes one
RankingContext, and records its timing, status, the number of items it
hands to the next stage and how many strategies had failed by then.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional

from .context import RankingContext
from ..logging_config import get_pipeline_logger, log_stage_start, log_stage_complete, log_stage_error


class RankingStage(ABC):
    """
    Abstract base class for ranking stages.

    Subclasses must implement:
    - name: Stage identifier
    - description: Human-readable description
    - _execute(): The actual stage logic

    The base class handles:
    - Timing and logging
    - Error handling (a failure is recorded, never raised)
    """

    # Context list this stage hands to the next one, counted after each run
    output_field: Optional[str] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this stage."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description of what this stage does."""
        pass

    @abstractmethod
    def _execute(self, context: RankingContext) -> None:
        """
        Execute the stage logic.

        This method should modify the context in place, adding its outputs
        to the appropriate context fields.

        Args:
            context: The ranking context to read from and write to

        Raises:
            Any exception on failure (will be caught by run())
        """
        pass

    def _get_output_summary(self, context: RankingContext) -> str:
        """
        Get a summary of what this stage produced.

        Override in subclasses for meaningful summaries.
        """
        return "completed"

    def _count_output(self, context: RankingContext) -> Optional[int]:
        if self.output_field is None:
            return None
        return len(getattr(context, self.output_field))

    def _record(
        self,
        context: RankingContext,
        success: bool,
        duration: float,
        error: Optional[str] = None,
        summary: Optional[str] = None
    ) -> None:
        context.record_stage(
            self.name,
            success=success,
            duration=duration,
            error=error,
            summary=summary,
            items_out=self._count_output(context) if success else None,
            failed_strategies=len(context.failed_strategies)
        )

    def run(self, context: RankingContext) -> bool:
        """
        Run this ranking stage.

        Args:
            context: The ranking context

        Returns:
            True if stage completed successfully, False otherwise
        """
        log_stage_start(self.name, context.request_id)
        start_time = time.perf_counter()

        try:
            self._execute(context)
        except Exception as e:
            duration = time.perf_counter() - start_time
            error_msg = f"{type(e).__name__}: {e}"
            log_stage_error(self.name, context.request_id, error_msg, duration)
            get_pipeline_logger(context.request_id).debug(f"Stage {self.name} traceback", exc_info=True)
            self._record(context, success=False, duration=duration, error=error_msg)
            return False

        duration = time.perf_counter() - start_time
        summary = self._get_output_summary(context)
        log_stage_complete(self.name, context.request_id, duration, summary)
        self._record(context, success=True, duration=duration, summary=summary)
        return True

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.name}>"


class ConditionalStage(RankingStage):
    """
    A ranking stage that only runs if a condition is met.

    Skipped stages are recorded as successful.
    """

    @abstractmethod
    def should_run(self, context: RankingContext) -> bool:
        """
        Determine if this stage should run.

        Args:
            context: The ranking context

        Returns:
            True if the stage should execute, False to skip
        """
        pass

    def _skip(self, context: RankingContext) -> None:
        """Hook for passing inputs through when the stage is skipped."""
        pass

    def run(self, context: RankingContext) -> bool:
        """Run the stage only if condition is met."""
        if not self.should_run(context):
            get_pipeline_logger(context.request_id).debug(f"Skipping stage {self.name}: condition not met")
            self._skip(context)
            self._record(context, success=True, duration=0.0, summary="skipped (condition not met)")
            return True

        return super().run(context)
