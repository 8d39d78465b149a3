"""Accumulator for validation errors and warnings."""


def join_or(values: list[str] | tuple[str, ...]) -> str:
    """Render values as a quoted, comma separated list ending in 'or'."""
    return _join(values, "or")


def join_and(values: list[str] | tuple[str, ...]) -> str:
    """Render values as a quoted, comma separated list ending in 'and'."""
    return _join(values, "and")


def _join(values: list[str] | tuple[str, ...], word: str) -> str:
    quoted = [f"'{v}'" for v in values]
    if len(quoted) <= 1:
        return "".join(quoted)
    return f"{', '.join(quoted[:-1])}, {word} {quoted[-1]}"


class ValidationReport:
    """Ordered fatal errors and warnings from a single validation pass.

    Errors block activation of a configuration; warnings are surfaced to
    operators only. Warnings marked as deprecations also raise the
    ``deprecated`` flag so a single summary notice can be emitted at the end
    of the pass.
    """

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.deprecated = False

    def error(self, message: str) -> None:
        """Record a fatal configuration error."""
        self.errors.append(message)

    def warn(self, message: str, *, deprecation: bool = False) -> None:
        """Record a warning, optionally flagging a deprecated behaviour."""
        self.warnings.append(message)
        if deprecation:
            self.deprecated = True

    @property
    def ok(self) -> bool:
        """Return True when no fatal errors were recorded."""
        return not self.errors
