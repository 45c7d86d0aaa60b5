"""Documented exit codes for the sdrscan CLI.

Exit codes follow UNIX conventions:
- 0: Success
- 1: General/unspecified error
- 2: Invalid command-line arguments or usage
- 3-5: Application-specific errors
- 130: Interrupted by the operator (SIGINT)

Usage:
    from sdrscan.util.exit_codes import ExitCode
    sys.exit(ExitCode.PROTOCOL_TIMEOUT)
"""

from __future__ import annotations

from sdrscan.errors import InvalidConfiguration, ProtocolTimeout, UnexpectedResponse


class ExitCode:
    """Exit code constants for sdrscan processes.

    Attributes:
        SUCCESS: Normal termination, no errors.
        GENERAL_ERROR: Unspecified runtime error.
        INVALID_ARGS: Command-line argument validation failed.
        PROTOCOL_TIMEOUT: Receiver did not answer a command in time.
        UNEXPECTED_RESPONSE: Receiver answered with something other than the acknowledgement.
        INVALID_CONFIGURATION: Options rejected before any command was sent.
        INTERRUPTED: Operator cancelled the run.
    """

    SUCCESS: int = 0
    GENERAL_ERROR: int = 1
    INVALID_ARGS: int = 2
    PROTOCOL_TIMEOUT: int = 3
    UNEXPECTED_RESPONSE: int = 4
    INVALID_CONFIGURATION: int = 5
    INTERRUPTED: int = 130

    @classmethod
    def message(cls, code: int) -> str:
        """Return a human-readable message for an exit code."""
        messages = {
            cls.SUCCESS: "Success",
            cls.GENERAL_ERROR: "General error",
            cls.INVALID_ARGS: "Invalid arguments",
            cls.PROTOCOL_TIMEOUT: "Receiver did not respond",
            cls.UNEXPECTED_RESPONSE: "Unexpected receiver response",
            cls.INVALID_CONFIGURATION: "Invalid configuration",
            cls.INTERRUPTED: "Interrupted",
        }
        return messages.get(code, f"Unknown exit code {code}")

    @classmethod
    def for_exception(cls, exc: BaseException) -> int:
        if isinstance(exc, ProtocolTimeout):
            return cls.PROTOCOL_TIMEOUT
        if isinstance(exc, UnexpectedResponse):
            return cls.UNEXPECTED_RESPONSE
        if isinstance(exc, InvalidConfiguration):
            return cls.INVALID_CONFIGURATION
        if isinstance(exc, KeyboardInterrupt):
            return cls.INTERRUPTED
        return cls.GENERAL_ERROR
