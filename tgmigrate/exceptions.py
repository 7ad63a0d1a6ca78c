"""Custom exception hierarchy for tgmigrate."""


class TGMigrateError(Exception):
    """Base for all tgmigrate errors."""


class InvalidVersionError(TGMigrateError):
    """A migration version was empty or not an integer."""


class InvalidDirectionError(TGMigrateError):
    """A stored migration record has a direction other than up or down."""


class MigrationNotFoundError(TGMigrateError):
    """No migration file exists for a version and direction."""

    def __init__(self, version: str, direction: str, directory: str = "") -> None:
        self.version = version
        self.direction = direction
        self.directory = directory
        msg = f"no migration file found. version: {version}, direction: {direction}"
        if directory:
            msg += f", directory: {directory}"
        super().__init__(msg)


class InvalidMigrationFileError(TGMigrateError):
    """A migration file exists but is not a readable UTF-8 script."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"migration file could not be read: {path}: {reason}")


class UnknownInitialisationError(TGMigrateError):
    """The metadata probe returned something other than 'found' or 'not found'."""


class CommitFailedError(TGMigrateError):
    """Recording a migration did not accept exactly one record."""


class PartialFailureError(CommitFailedError):
    """A migration ran but its record could not be written.

    The schema change is live on the server but the metadata graph does not
    know about it. Needs an operator.
    """

    def __init__(self, version: str, direction: str, cause: BaseException) -> None:
        self.version = version
        self.direction = direction
        super().__init__(
            "failed to commit migration version to metadata graph.\n"
            "IMPORTANT: this requires manual intervention. The migration "
            f"{version} ({direction}) ran successfully but its record could not be set.\n"
            "The easiest resolution is to set the init version to the migration version "
            "printed here, which adds the missing record and skips the version.\n"
            f"I.e. set TIGER_GRAPH_MIGRATION_INIT_VERSION={version} as an env var. "
            f"Original error: {cause}"
        )


class SchemaSetupError(TGMigrateError):
    """A migration script failed to run."""


class MigrationStateError(TGMigrateError):
    """Invalid migration run state transition."""


class TransportError(TGMigrateError):
    """Talking to TigerGraph failed."""


class RequestFailedError(TransportError):
    """The HTTP request could not be made or timed out."""


class NonOKStatusError(TransportError):
    """TigerGraph answered with a non-200 status code."""

    def __init__(self, status_code: int, url: str = "") -> None:
        self.status_code = status_code
        super().__init__(
            f"TigerGraph returned non-OK status code. code: {status_code}, url: {url}"
        )


class RemoteResponseError(TransportError):
    """The response body carried an error flag or could not be decoded."""


class GSQLError(TransportError):
    """GSQL ran but the server did not report success."""

    def __init__(self, message: str, response: str = "") -> None:
        self.response = response
        super().__init__(message)


class DeadlineExceededError(TransportError):
    """The run's deadline passed before the next network call."""


class LoadingJobError(TGMigrateError):
    """A loading job request failed."""


class LoadingJobPartialError(LoadingJobError):
    """A loading job saved some lines but rejected others."""
