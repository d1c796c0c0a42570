"""
Operation result schemas.
"""
from pydantic import BaseModel, Field


class IdentityError(BaseModel):
    """A single failure reason."""
    code: str = Field(..., description="Stable machine-readable error code")
    description: str = Field(..., description="Human readable message")


class IdentityResult(BaseModel):
    """Outcome of a mutating identity operation."""
    succeeded: bool = Field(default=False, description="Whether the operation succeeded")
    errors: list[IdentityError] = Field(
        default_factory=list,
        description="Failure reasons, empty on success"
    )

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> "IdentityResult":
        return cls(succeeded=False, errors=list(errors))

    @classmethod
    def combine(cls, results: list["IdentityResult"]) -> "IdentityResult":
        """Merge results: success only if all succeeded, errors concatenated."""
        errors = [error for result in results for error in result.errors]
        if all(result.succeeded for result in results):
            return cls.success()
        return cls.failed(*errors)

    @property
    def error_codes(self) -> list[str]:
        return [error.code for error in self.errors]

    def __str__(self) -> str:
        if self.succeeded:
            return "Succeeded"
        return f"Failed : {','.join(self.error_codes)}"
