"""Exceptions raised by the background job runner."""


class JobError(Exception):
    """Base exception for job runner errors."""

    pass


class JobStepError(JobError):
    """A workflow step failed; the runner retries the run."""

    def __init__(self, step_id: str, message: str) -> None:
        super().__init__(f"Step {step_id} failed: {message}")
        self.step_id = step_id


class NonRetriableError(JobError):
    """The run cannot succeed on retry (bad input, unknown workflow); fails at once."""

    pass
