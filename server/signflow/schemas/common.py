from typing import Optional

from pydantic import BaseModel, ConfigDict

from signflow.core.errors import WorkflowError


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ErrorRead(BaseModel):
    error_code: str
    message: str
    provider: str | None = None
    consent_url: str | None = None

    @classmethod
    def from_error(cls, error: Optional[WorkflowError]) -> Optional["ErrorRead"]:
        if error is None:
            return None
        return cls(
            error_code=error.error_code,
            message=error.error_message,
            provider=error.provider,
            consent_url=getattr(error, "consent_url", None),
        )
