import logging
from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from vibe_check.clients.llm import ModelInvoker, OpenRouterClient
from vibe_check.errors import ConfigurationError
from vibe_check.models.config import ScanConfig
from vibe_check.models.report import VulnerabilityReport
from vibe_check.repositories.config import ConfigRepository
from vibe_check.services.analyzer import CodeAnalyzerService
from vibe_check.services.context_builder import ContextBuilderService
from vibe_check.services.insights import InsightGeneratorService
from vibe_check.services.reporter import ReportAssembler
from vibe_check.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

StageCallback = Callable[[str], None]


class ScanPipeline(BaseModel):
    """Run one scan: context, analysis request, insight request, report."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    config_repository: ConfigRepository = Field(default_factory=ConfigRepository)
    invoker_factory: Callable[[ScanConfig], ModelInvoker] = OpenRouterClient
    cancellation: CancellationToken = Field(default_factory=CancellationToken)
    on_stage: StageCallback | None = None

    def _stage(self, message: str) -> None:
        logger.info(message)
        if self.on_stage is not None:
            self.on_stage(message)

    def _load_config(self) -> ScanConfig:
        cfg = self.config_repository.load()
        if cfg is None:
            raise ConfigurationError(
                'No configuration found. Please run "vibe-check config setup" first.'
            )
        return cfg

    def run(self, target: str | Path) -> VulnerabilityReport:
        """Scan a directory (or a single file) and build its report.

        Raises:
            VibeCheckError: Any classified failure; no partial report is produced.
        """
        cfg = self._load_config()
        invoker = self.invoker_factory(cfg)
        analyzer = CodeAnalyzerService(
            config=cfg,
            invoker=invoker,
            builder=ContextBuilderService(cancellation=self.cancellation),
            cancellation=self.cancellation,
        )
        insight_generator = InsightGeneratorService(
            config=cfg, invoker=invoker, cancellation=self.cancellation
        )

        self._stage("Deep-scanning codebase for vulnerabilities...")
        target_path = Path(target).expanduser()
        if target_path.is_file():
            vulnerabilities = analyzer.analyze_file(target_path)
        else:
            vulnerabilities = analyzer.analyze_codebase(target)

        self._stage("Generating AI insights...")
        insights = insight_generator.generate_insights(vulnerabilities)

        return ReportAssembler().generate_report(vulnerabilities, insights)
