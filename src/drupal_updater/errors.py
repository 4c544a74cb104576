"""Exceptions raised by drupal-updater.

Only conditions that must stop a run are exceptions. A drush or git call
that exits non-zero is reported as a ``CommandResult`` and inspected by the
caller instead.
"""


class UpdaterError(Exception):
    """Base exception for drupal-updater errors."""

    pass


class ToolUnavailable(UpdaterError):
    """A required external tool is missing or could not be executed."""

    def __init__(self, tool: str, detail: str = ""):
        self.tool = tool
        self.detail = detail
        message = f"Could not find {tool}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MalformedResponse(UpdaterError):
    """An external tool answered with output that could not be parsed."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Unexpected output from {source}: {detail}")


class PreflightError(UpdaterError):
    """The target installation is not in a state where updates can run.

    Attributes:
        problems: One line per failed check, in the order they were found.
        hint: Remediation advice printed after the problems.
    """

    def __init__(self, problems: list[str], hint: str = ""):
        self.problems = list(problems)
        self.hint = hint
        lines = list(self.problems)
        if hint:
            lines.append(hint)
        super().__init__("\n".join(lines))


class InvalidAuthor(UpdaterError, ValueError):
    """Commit author is not in the ``Name <user@domain>`` form."""

    def __init__(self, author: str):
        self.author = author
        super().__init__(
            f"Invalid author {author!r}: expected the form 'Name <user@domain>'"
        )


class MissingCommitMessage(UpdaterError):
    """A commit was requested without a message."""

    pass
