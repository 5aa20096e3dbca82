from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")
    retryable: bool = Field(False, description="Set when the whole operation can safely be retried")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "ChatApplication not found", "type": "not_found"},
                {"message": "Message body cannot be empty", "type": "validation_error"},
                {
                    "message": "Could not allocate a number in 'messages:...' after 5 attempts",
                    "type": "allocation_exhausted",
                    "retryable": True,
                },
            ]
        }
    }
