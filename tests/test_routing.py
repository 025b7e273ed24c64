"""Tests for project classification, routing and output paths."""

from datetime import datetime
from pathlib import PurePath

import pytest

from transcript_filer.errors import ConfigurationError
from transcript_filer.models import (
    ClassificationSignal,
    ConflictResolution,
    ContextType,
    Entity,
    EntityType,
    FilenameOption,
    FilesystemStructure,
    ProjectRoute,
    RouteDestination,
    RoutingConfig,
    RoutingContext,
    SignalType,
)
from transcript_filer.routing import RoutingEngine, build_output_path, calculate_confidence
from transcript_filer.routing.classifier import ProjectClassifier, infer_context_type
from transcript_filer.routing.paths import extract_subject, slugify


RECORDED = datetime(2026, 5, 10, 14, 30)

ENTITIES = [
    Entity(id="priya", name="Priya", type=EntityType.PERSON, sounds_like=["pria"]),
    Entity(id="acme", name="Acme", type=EntityType.COMPANY),
    Entity(
        id="kubernetes",
        name="Kubernetes",
        type=EntityType.TERM,
        sounds_like=["cooper netties"],
        projects=["gamma"],
    ),
]


def make_config(policy="primary", projects=None):
    if projects is None:
        projects = [
            {
                "project_id": "alpha",
                "classification": {"associated_people": ["priya"]},
                "destination": {"path": "/work/alpha"},
                "auto_tags": ["alpha"],
            },
            {
                "project_id": "beta",
                "classification": {"explicit_phrases": ["beta launch"], "topics": ["roadmap"]},
                "destination": {"path": "/work/beta", "structure": "day"},
            },
        ]
    return {
        "default": {"path": "/notes"},
        "projects": projects,
        "conflict_resolution": policy,
    }


def context(text, source_file="memo.m4a"):
    return RoutingContext(transcript_text=text, audio_date=RECORDED, source_file=source_file)


class TestCalculateConfidence:
    """Tests for calculate_confidence."""

    def test_empty(self):
        """Test no signals gives zero confidence."""
        assert calculate_confidence([]) == 0.0

    def test_single_signal(self):
        """Test a single signal's confidence is its weight."""
        signal = ClassificationSignal(type=SignalType.EXPLICIT_PHRASE, value="x", weight=0.9)

        assert calculate_confidence([signal]) == pytest.approx(0.9)

    def test_diminishing_returns(self):
        """Test later signals count less and the result is capped."""
        strong = ClassificationSignal(type=SignalType.EXPLICIT_PHRASE, value="x", weight=0.9)
        weak = ClassificationSignal(type=SignalType.TOPIC, value="y", weight=0.3)

        expected = (0.9 + 0.3 / 1.3) / (1 + 1 / 1.3)
        assert calculate_confidence([strong, weak]) == pytest.approx(expected)

        full = ClassificationSignal(type=SignalType.EXPLICIT_PHRASE, value="z", weight=1.0)
        assert calculate_confidence([full, full]) == 0.99


class TestInferContextType:
    """Tests for infer_context_type."""

    def test_types(self):
        """Test work, personal and mixed inference."""
        assert infer_context_type("team meeting about the client report") is ContextType.WORK
        assert infer_context_type("family weekend with a friend") is ContextType.PERSONAL
        assert infer_context_type("a meeting with family") is ContextType.MIXED


class TestProjectClassifier:
    """Tests for ProjectClassifier."""

    def test_explicit_phrase(self):
        """Test explicit phrases match case-insensitively."""
        routes = RoutingConfig.model_validate(make_config()).projects
        results = ProjectClassifier(ENTITIES).classify(context("The Beta Launch slipped"), routes)

        assert [r.project_id for r in results] == ["beta"]
        assert results[0].signals[0].type is SignalType.EXPLICIT_PHRASE
        assert 'explicit phrase: "beta launch"' in results[0].reasoning

    def test_associated_person_by_variant(self):
        """Test an associated person's sounds-like variant counts as a mention."""
        routes = RoutingConfig.model_validate(make_config()).projects
        results = ProjectClassifier(ENTITIES).classify(context("pria called in"), routes)

        assert [r.project_id for r in results] == ["alpha"]
        assert results[0].signals[0].type is SignalType.ASSOCIATED_PERSON
        assert results[0].confidence == pytest.approx(0.6)

    def test_entity_projects_association(self):
        """Test an entity listing the project in its own projects is associated."""
        routes = [
            ProjectRoute(project_id="gamma", destination=RouteDestination(path="/work/gamma"))
        ]
        results = ProjectClassifier(ENTITIES).classify(
            context("the cooper netties cluster is down"), routes
        )

        assert [r.project_id for r in results] == ["gamma"]
        assert results[0].signals[0].type is SignalType.ASSOCIATED_TERM

    def test_topics_alone_do_not_match(self):
        """Test topics only add confidence to a project that already matches."""
        routes = RoutingConfig.model_validate(make_config()).projects
        classifier = ProjectClassifier(ENTITIES)

        assert classifier.classify(context("the roadmap is ready"), routes) == []

        (result,) = classifier.classify(context("roadmap for the beta launch"), routes)
        assert [s.type for s in result.signals] == [SignalType.EXPLICIT_PHRASE, SignalType.TOPIC]

    def test_inactive_route_skipped(self):
        """Test inactive routes never match."""
        routes = RoutingConfig.model_validate(make_config()).projects
        routes[1].active = False

        assert ProjectClassifier(ENTITIES).classify(context("beta launch"), routes) == []

    def test_inactive_entity_ignored(self):
        """Test inactive entities supply no phrases."""
        entities = [Entity(id="priya", name="Priya", type=EntityType.PERSON, active=False)]
        routes = RoutingConfig.model_validate(make_config()).projects

        assert ProjectClassifier(entities).classify(context("priya called"), routes) == []


class TestRoute:
    """Tests for RoutingEngine.route."""

    def test_no_projects_uses_default(self):
        """Test an empty project list routes to the default."""
        engine = RoutingEngine({"default": {"path": "/notes"}})
        decision = engine.route(context("anything at all"))

        assert decision.project_id is None
        assert decision.destination == RouteDestination(path="/notes")
        assert decision.confidence == 1.0
        assert "default" in decision.reasoning

    def test_no_match_uses_default(self):
        """Test a transcript matching nothing routes to the default."""
        engine = RoutingEngine(make_config(), ENTITIES)
        decision = engine.route(context("groceries and errands"))

        assert decision.project_id is None
        assert decision.destination.path == "/notes"

    def test_primary_picks_first_configured(self):
        """Test primary policy prefers the earlier project even at lower confidence."""
        engine = RoutingEngine(make_config("primary"), ENTITIES)
        decision = engine.route(context("Priya walked through the beta launch"))

        assert decision.project_id == "alpha"
        assert decision.auto_tags == ["alpha"]
        assert decision.destination.path == "/work/alpha"
        assert decision.alternate_matches == []

    def test_ask_picks_highest_with_alternates(self):
        """Test ask policy picks the most confident match and lists the rest."""
        engine = RoutingEngine(make_config("ask"), ENTITIES)
        decision = engine.route(context("Priya walked through the beta launch"))

        assert decision.project_id == "beta"
        assert decision.confidence == pytest.approx(0.9)
        assert [a.project_id for a in decision.alternate_matches] == ["alpha"]

    def test_all_policy_low_alternates_dropped(self):
        """Test alternates at or below the threshold are not reported."""
        projects = [
            {
                "project_id": "vendor",
                "classification": {"associated_companies": ["acme"]},
                "destination": {"path": "/work/vendor"},
            },
            {
                "project_id": "beta",
                "classification": {"explicit_phrases": ["beta launch"]},
                "destination": {"path": "/work/beta"},
            },
        ]
        engine = RoutingEngine(make_config("all", projects), ENTITIES)
        decision = engine.route(context("acme joined the beta launch"))

        assert decision.project_id == "beta"
        assert decision.alternate_matches == []

    def test_invalid_policy(self):
        """Test an unknown conflict policy is a configuration error."""
        with pytest.raises(ConfigurationError):
            RoutingEngine(make_config("random"))

    def test_invalid_config_dict(self):
        """Test a config without a default is a configuration error."""
        with pytest.raises(ConfigurationError):
            RoutingEngine({"projects": []})


class TestRoutingMutation:
    """Tests for runtime configuration changes."""

    def test_add_project(self):
        """Test added projects are routed to."""
        engine = RoutingEngine({"default": {"path": "/notes"}})
        engine.add_project(
            {
                "project_id": "delta",
                "classification": {"explicit_phrases": ["delta"]},
                "destination": {"path": "/work/delta"},
            }
        )

        assert engine.route(context("the delta plan")).project_id == "delta"

    def test_add_project_not_deduplicated(self):
        """Test the same id can be appended twice."""
        engine = RoutingEngine(make_config())
        route = ProjectRoute(project_id="alpha", destination=RouteDestination(path="/x"))
        engine.add_project(route)

        assert [p.project_id for p in engine.get_config().projects] == ["alpha", "beta", "alpha"]

    def test_add_invalid_project(self):
        """Test an invalid project dict is a configuration error."""
        engine = RoutingEngine(make_config())

        with pytest.raises(ConfigurationError):
            engine.add_project({"project_id": "missing-destination"})

    def test_update_default_route(self):
        """Test replacing the default destination."""
        engine = RoutingEngine(make_config())
        engine.update_default_route({"path": "/inbox", "structure": "none"})

        decision = engine.route(context("nothing matches"))
        assert decision.destination.path == "/inbox"
        assert decision.destination.structure is FilesystemStructure.NONE

    def test_get_config_is_snapshot(self):
        """Test changing the returned config does not affect the engine."""
        engine = RoutingEngine(make_config())
        snapshot = engine.get_config()
        snapshot.projects.clear()
        snapshot.default.path = "/elsewhere"
        snapshot.conflict_resolution = ConflictResolution.ASK

        current = engine.get_config()
        assert len(current.projects) == 2
        assert current.default.path == "/notes"
        assert current.conflict_resolution is ConflictResolution.PRIMARY

    def test_config_model_copied(self):
        """Test the engine keeps its own copy of a config model."""
        config = RoutingConfig.model_validate(make_config())
        engine = RoutingEngine(config)
        config.projects.clear()

        assert len(engine.get_config().projects) == 2


class TestOutputPath:
    """Tests for output path building."""

    def test_month_structure(self):
        """Test month structure puts year/month in directories and the day in the filename."""
        destination = RouteDestination(path="/work/alpha")
        path = build_output_path(destination, context("Budget planning. Details follow."))

        assert "/2026/5/" in path
        filename = PurePath(path).name
        assert filename.startswith("10-")
        assert filename.endswith(".md")
        assert filename == "10-1430-budget-planning.md"

    @pytest.mark.parametrize(
        "structure,directory,prefix",
        [
            ("none", "/work", "260510-"),
            ("year", "/work/2026", "05-10-"),
            ("day", "/work/2026/5/10", "1430-"),
        ],
    )
    def test_structures(self, structure, directory, prefix):
        """Test each structure's directories and filename date part."""
        destination = RouteDestination(path="/work", structure=structure)
        path = PurePath(build_output_path(destination, context("Budget planning.")))

        assert str(path.parent) == directory
        assert path.name.startswith(prefix)

    def test_engine_build_output_path(self):
        """Test the engine builds paths from its decisions."""
        engine = RoutingEngine(make_config(), ENTITIES)
        ctx = context("Notes on the beta launch")
        decision = engine.route(ctx)

        assert engine.build_output_path(decision, ctx) == (
            "/work/beta/2026/5/10/1430-notes-on-the-beta-launch.md"
        )

    def test_subject_falls_back_to_source(self):
        """Test an unusable first sentence falls back to the source filename."""
        destination = RouteDestination(path="/work", filename_options=[FilenameOption.SUBJECT])
        path = build_output_path(destination, context("ok", source_file="Voice Memo 12.m4a"))

        assert PurePath(path).name == "voice-memo-12.md"

    def test_empty_filename_fallback(self):
        """Test a filename with no parts falls back to a fixed name."""
        destination = RouteDestination(
            path="/work", structure="day", filename_options=[FilenameOption.DATE]
        )
        path = build_output_path(destination, context("ok", source_file=""))

        assert PurePath(path).name == "transcript.md"

    def test_home_expanded(self):
        """Test a leading ~ in the destination is expanded."""
        destination = RouteDestination(path="~/notes")

        assert not build_output_path(destination, context("Hello there.")).startswith("~")


class TestSubject:
    """Tests for subject extraction."""

    def test_prefix_stripped(self):
        """Test common note prefixes are removed."""
        assert extract_subject("This is a note about the Q3 budget. More.", "") == "the-q3-budget"

    def test_slugify(self):
        """Test slugs are lowercase, dashed and bounded."""
        assert slugify("  Hello, World!  ") == "hello-world"
        assert len(slugify("word " * 30)) <= 40
