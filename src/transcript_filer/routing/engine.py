"""Routing engine.

Classifies transcripts against configured projects, resolves conflicts
between matching projects, and builds output paths.

Example:
    engine = RoutingEngine(load_routing_config("routing.yaml"), entities)
    decision = engine.route(RoutingContext(transcript_text=text, audio_date=recorded_at))
    path = engine.build_output_path(decision, context)
"""

from __future__ import annotations

from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from transcript_filer.errors import configuration_error_from
from transcript_filer.logging import get_logger
from transcript_filer.models.entity import Entity
from transcript_filer.models.routing import (
    ConflictResolution,
    ProjectRoute,
    RouteDestination,
    RoutingConfig,
    RoutingContext,
    RoutingDecision,
)
from transcript_filer.routing import paths
from transcript_filer.routing.classifier import ProjectClassifier

logger = get_logger(__name__)

# Matches above this confidence are reported as alternates under ask/all
ALTERNATE_MATCH_THRESHOLD = 0.5


class RoutingEngine:
    """Routes transcripts to project destinations.

    The configuration is owned by the engine and may be changed at runtime
    through ``add_project`` and ``update_default_route``.
    """

    def __init__(
        self,
        config: RoutingConfig | dict[str, Any],
        entities: Iterable[Entity] = (),
    ):
        """Initialize the engine.

        Args:
            config: Routing configuration, or a dict to validate into one
            entities: Knowledge store entities supplying inherited trigger phrases

        Raises:
            ConfigurationError: If ``config`` is not a valid routing configuration
        """
        if isinstance(config, dict):
            try:
                config = RoutingConfig.model_validate(config)
            except PydanticValidationError as e:
                raise configuration_error_from(e, "routing config") from e
        else:
            config = config.model_copy(deep=True)

        self._config = config
        self.classifier = ProjectClassifier(entities)

    def route(self, context: RoutingContext) -> RoutingDecision:
        """Pick the destination for a transcript.

        No match routes to the default destination with ``project_id`` None.
        """
        config = self._config
        matches = self.classifier.classify_routes(context, config.projects)

        if not matches:
            logger.info("No project matches found, using default routing")
            return RoutingDecision(
                project_id=None,
                destination=config.default.model_copy(deep=True),
                confidence=1.0,
                reasoning="No project matches found, using default routing",
            )

        alternates = []
        if config.conflict_resolution is ConflictResolution.PRIMARY:
            route, result = matches[0]
        else:
            # Stable sort keeps configuration order among equal confidences
            ranked = sorted(matches, key=lambda m: -m[1].confidence)
            route, result = ranked[0]
            alternates = [
                r for _, r in ranked[1:] if r.confidence > ALTERNATE_MATCH_THRESHOLD
            ]

        logger.info(
            f"Routed to project '{route.project_id}' (confidence {result.confidence:.2f})",
            extra={
                "project": route.project_id,
                "matches": len(matches),
                "policy": config.conflict_resolution.value,
            },
        )
        return RoutingDecision(
            project_id=route.project_id,
            destination=route.destination.model_copy(deep=True),
            auto_tags=list(route.auto_tags),
            confidence=result.confidence,
            signals=result.signals,
            reasoning=result.reasoning,
            alternate_matches=alternates,
        )

    def build_output_path(self, decision: RoutingDecision, context: RoutingContext) -> str:
        """Path (directory structure + filename + extension) for a routed transcript."""
        return paths.build_output_path(decision.destination, context)

    def add_project(self, project: ProjectRoute | dict[str, Any]) -> None:
        """Append a project route. Ids are not deduplicated."""
        if isinstance(project, dict):
            try:
                project = ProjectRoute.model_validate(project)
            except PydanticValidationError as e:
                raise configuration_error_from(e, "project route") from e
        self._config.projects.append(project)
        logger.debug(f"Added project route: {project.project_id}")

    def update_default_route(self, destination: RouteDestination | dict[str, Any]) -> None:
        """Replace the default destination."""
        if isinstance(destination, dict):
            try:
                destination = RouteDestination.model_validate(destination)
            except PydanticValidationError as e:
                raise configuration_error_from(e, "default route") from e
        self._config.default = destination

    def get_config(self) -> RoutingConfig:
        """Snapshot of the current configuration; changing it does not affect the engine."""
        return self._config.model_copy(deep=True)
