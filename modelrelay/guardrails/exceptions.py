"""Exception classes for SQL guardrails."""


class GuardrailRejectedError(Exception):
    """Raised when a guardrail rejects an execute_sql call.

    The tool dispatcher catches this and reports the reason back to the model
    as tool output, so the model can revise its query and retry within its
    attempt budget. It never escapes the tool loop.

    Attributes:
        reason: Model-friendly reason why the call was rejected
        guardrail_name: Optional name of the guardrail that failed
    """

    def __init__(self, reason: str, guardrail_name: str | None = None):
        """Initialize GuardrailRejectedError.

        Args:
            reason: Model-friendly reason why the call was rejected
            guardrail_name: Optional name of the guardrail that failed
        """
        self.reason = reason
        self.guardrail_name = guardrail_name
        message = f"Tool call rejected by guardrail: {reason}"
        if guardrail_name:
            message += f" (guardrail: {guardrail_name})"
        super().__init__(message)
