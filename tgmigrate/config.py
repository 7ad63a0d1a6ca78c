"""Global configuration: loaded from environment variables."""

from pathlib import Path

from pydantic_settings import BaseSettings


class TigerGraphSettings(BaseSettings):
    url: str = "http://localhost:9000"
    gsql_url: str = ""  # defaults to url when empty
    username: str = "tigergraph"
    password: str = ""
    request_timeout: float = 30.0

    # Migration settings
    graph: str = ""
    migration_version: str = ""
    migration_init_version: str = ""  # only used the first time a server is bootstrapped
    migration_dir: Path = Path("migrations")
    dry_run: bool = False

    log_level: str = "INFO"

    model_config = {"env_prefix": "TIGER_GRAPH_"}

    @property
    def effective_gsql_url(self) -> str:
        return self.gsql_url or self.url


settings = TigerGraphSettings()
