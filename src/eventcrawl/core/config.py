"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from eventcrawl.core.exceptions import ConfigurationError
from eventcrawl.models.catalog import DeleteBehavior, SchemaChangePolicy, UpdateBehavior
from eventcrawl.models.classifier import ClassifierSpec, FormatKind, HeaderMode
from eventcrawl.models.crawl import CrawlTarget, RecrawlBehavior


class S3Config(BaseSettings):
    """Object store configuration."""

    model_config = {"env_prefix": "EVENTCRAWL_S3_"}

    bucket: str = "eventcrawl-data"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    input_prefix: str = "input/"
    output_prefix: str = "output/"
    sample_bytes: int = 1024 * 1024


class SQSConfig(BaseSettings):
    """Change notification queue configuration."""

    model_config = {"env_prefix": "EVENTCRAWL_SQS_"}

    queue_url: str = ""
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    wait_time_seconds: int = 20
    max_messages: int = 10
    visibility_timeout: int = 300


class CatalogConfig(BaseSettings):
    """DynamoDB-backed catalog configuration."""

    model_config = {"env_prefix": "EVENTCRAWL_CATALOG_"}

    table_name: str = "eventcrawl-catalog"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    namespace: str = ""  # defaults to the app namespace
    table_prefix: str = ""  # defaults to the app namespace, lower-cased
    table_separator: str = "_"


class ClassifierConfig(BaseSettings):
    """Primary custom classifier parameters."""

    model_config = {"env_prefix": "EVENTCRAWL_CLASSIFIER_"}

    name: str = ""  # defaults to "<ns>-csv-classifier"
    format_kind: FormatKind = FormatKind.CSV
    delimiter: str = ","
    quote_symbol: str = '"'
    header_mode: HeaderMode = HeaderMode.UNKNOWN
    column_names: Optional[list[str]] = None
    allow_single_column: bool = False
    include_builtin: bool = True


class CrawlerConfig(BaseSettings):
    """Crawl coordinator behaviour."""

    model_config = {"env_prefix": "EVENTCRAWL_CRAWLER_"}

    recrawl_behavior: RecrawlBehavior = RecrawlBehavior.CRAWL_EVENT_MODE
    update_behavior: UpdateBehavior = UpdateBehavior.UPDATE_IN_DATABASE
    delete_behavior: DeleteBehavior = DeleteBehavior.DEPRECATE_IN_DATABASE
    max_workers: int = 4
    prefix_timeout_seconds: float = 300.0
    merge_max_retries: int = 5
    extra_targets: list[CrawlTarget] = Field(default_factory=list)


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "EVENTCRAWL_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    ns: str = "EventCrawl"
    stage: str = "dev"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"
    backend: Literal["aws", "memory"] = "aws"

    s3: S3Config = Field(default_factory=S3Config)
    sqs: SQSConfig = Field(default_factory=SQSConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @property
    def namespace(self) -> str:
        return self.catalog.namespace or self.ns.lower()

    @property
    def location_uri(self) -> str:
        return f"s3://{self.s3.bucket}/{self.s3.output_prefix}"

    @property
    def table_prefix(self) -> str:
        return self.catalog.table_prefix or self.ns.lower()

    def schema_change_policy(self) -> SchemaChangePolicy:
        return SchemaChangePolicy(
            update_behavior=self.crawler.update_behavior,
            delete_behavior=self.crawler.delete_behavior,
        )

    def classifier_specs(self) -> list[ClassifierSpec]:
        """Build the custom classifier list. Raises ConfigurationError."""
        cfg = self.classifier
        try:
            return [ClassifierSpec(
                name=cfg.name or f"{self.ns.lower()}-{cfg.format_kind}-classifier",
                format_kind=cfg.format_kind,
                delimiter=cfg.delimiter,
                quote_symbol=cfg.quote_symbol,
                header_mode=cfg.header_mode,
                column_names=cfg.column_names,
                allow_single_column=cfg.allow_single_column,
            )]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid classifier configuration: {exc}") from exc

    def crawl_targets(self) -> list[CrawlTarget]:
        """The primary input target followed by any extra targets."""
        primary = CrawlTarget(
            path=self.s3.input_prefix,
            queue_url=self.sqs.queue_url,
            table_prefix=self.table_prefix,
        )
        return [primary, *self.crawler.extra_targets]

    def validate_startup(self) -> None:
        """Check cross-field constraints. Raises ConfigurationError."""
        sep = self.catalog.table_separator
        if not sep:
            raise ConfigurationError("catalog.table_separator may not be empty")
        self.classifier_specs()

        targets = self.crawl_targets()
        seen_prefixes: set[str] = set()
        for target in targets:
            if not target.path.endswith("/"):
                raise ConfigurationError(f"Crawl target path {target.path!r} must end with '/'")
            if sep in target.table_prefix:
                raise ConfigurationError(
                    f"Table prefix {target.table_prefix!r} may not contain separator {sep!r}"
                )
            if len(targets) > 1 and not target.table_prefix:
                raise ConfigurationError(
                    f"Crawl target {target.path!r} needs a table prefix when targets share a catalog"
                )
            if target.queue_url and target.queue_url != self.sqs.queue_url:
                raise ConfigurationError(
                    f"Crawl target {target.path!r} reports to {target.queue_url!r}; "
                    f"this crawler only drains {self.sqs.queue_url!r}"
                )
            if target.table_prefix in seen_prefixes:
                raise ConfigurationError(f"Duplicate table prefix {target.table_prefix!r}")
            seen_prefixes.add(target.table_prefix)

        paths = [t.path for t in targets]
        for i, a in enumerate(paths):
            for b in paths[i + 1:]:
                if a.startswith(b) or b.startswith(a):
                    raise ConfigurationError(f"Overlapping crawl targets {a!r} and {b!r}")

        if self.crawler.max_workers < 1:
            raise ConfigurationError("crawler.max_workers must be at least 1")
        if self.crawler.merge_max_retries < 1:
            raise ConfigurationError("crawler.merge_max_retries must be at least 1")
        if self.backend == "aws" and not self.sqs.queue_url:
            raise ConfigurationError("sqs.queue_url is required for the aws backend")


def load_settings(**overrides) -> AppSettings:
    """Load and validate settings. Any problem is a ConfigurationError."""
    try:
        settings = AppSettings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc
    settings.validate_startup()
    return settings
