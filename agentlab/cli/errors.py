"""Structured CLI errors.

Every failure the CLI reports flows through ``CLIError``: a primary message,
an optional single-line "next" action and an ordered list of hints. Handlers
raise; the dispatcher renders the error once (see ``agentlab.cli.output``)
and maps it to an exit code.

Sentinels:
    HelpRequested: help text was printed, exit 0.
    UsageError: bad invocation, exit 2 (optionally dumping usage).
    Canceled: the run was interrupted, exit 1.
"""

from typing import Iterable, Optional

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def normalize_hints(hints: Iterable[str]) -> list[str]:
    """Trim hints, drop empty ones and deduplicate (first occurrence wins)."""
    seen: set[str] = set()
    normalized: list[str] = []
    for hint in hints:
        if hint is None:
            continue
        value = str(hint).strip()
        if not value or value in seen:
            continue
        seen.add(value)
        normalized.append(value)
    return normalized


class CLIError(Exception):
    """Base exception for errors shown to the operator.

    Attributes:
        message: Human-readable error description.
        next: Optional single-line follow-up command.
        hints: Ordered, deduplicated tips.
    """

    exit_code = EXIT_FAILURE

    def __init__(
        self,
        message: str,
        next: Optional[str] = None,
        hints: Optional[Iterable[str]] = None,
    ) -> None:
        self.message = message
        self.next = (next or "").strip()
        self.hints = normalize_hints(hints or ())
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class UsageError(CLIError):
    """Invalid invocation: unknown command or flag, missing or conflicting flags.

    ``usage`` holds the usage line of the command that failed so the
    dispatcher can print it when ``show_usage`` is set.
    """

    exit_code = EXIT_USAGE

    def __init__(
        self,
        message: str,
        next: Optional[str] = None,
        hints: Optional[Iterable[str]] = None,
        show_usage: bool = False,
        usage: str = "",
    ) -> None:
        super().__init__(message, next=next, hints=hints)
        self.show_usage = show_usage
        self.usage = usage


class HelpRequested(CLIError):
    """Help was printed; the dispatcher exits 0 without rendering anything."""

    exit_code = EXIT_OK

    def __init__(self) -> None:
        super().__init__("help requested")


class Canceled(CLIError):
    """Raised when the run context is canceled (SIGINT)."""

    def __init__(self, message: str = "canceled") -> None:
        super().__init__(
            message, hints=["the operation was interrupted before it finished"]
        )


def wrap_error(
    err: BaseException,
    message: str,
    next: Optional[str] = None,
    hints: Optional[Iterable[str]] = None,
) -> CLIError:
    """Wrap ``err`` in a CLIError, keeping it as the cause.

    Hints already attached to a wrapped CLIError are carried over ahead of
    the new ones.
    """
    inherited: list[str] = []
    inherited_next = ""
    if isinstance(err, CLIError):
        inherited = list(err.hints)
        inherited_next = err.next
    wrapped = CLIError(
        message,
        next=next or inherited_next,
        hints=[*inherited, *(hints or ())],
    )
    wrapped.__cause__ = err
    return wrapped


def with_next(err: BaseException, next: str) -> BaseException:
    """Attach a next hint unless the error already carries one."""
    if isinstance(err, CLIError):
        if not err.next:
            err.next = (next or "").strip()
        return err
    return wrap_error(err, str(err), next=next)


def with_hints(err: BaseException, *hints: str) -> BaseException:
    """Append hints, keeping the list normalized."""
    if isinstance(err, CLIError):
        err.hints = normalize_hints([*err.hints, *hints])
        return err
    return wrap_error(err, str(err), hints=hints)


def with_default_next(err: BaseException, next: str) -> BaseException:
    """Like ``with_next`` but never decorates the help sentinel."""
    if isinstance(err, HelpRequested):
        return err
    return with_next(err, next)


def describe_error(err: Optional[BaseException]) -> tuple[str, str, list[str]]:
    """Return ``(message, next, hints)`` for any exception.

    ``None`` describes as ``("", "", [])``; exceptions without structure
    describe as ``(str(err), "", [])``.
    """
    if err is None:
        return "", "", []
    if isinstance(err, CLIError):
        return err.message, err.next, list(err.hints)
    return str(err), "", []


def is_usage_error(err: BaseException) -> bool:
    """Walk the cause chain looking for a usage error."""
    seen: set[int] = set()
    current: Optional[BaseException] = err
    while current is not None and id(current) not in seen:
        if isinstance(current, UsageError):
            return True
        seen.add(id(current))
        current = current.__cause__
    return False


def exit_code_for(err: BaseException) -> int:
    if isinstance(err, HelpRequested):
        return EXIT_OK
    if is_usage_error(err):
        return EXIT_USAGE
    return EXIT_FAILURE
