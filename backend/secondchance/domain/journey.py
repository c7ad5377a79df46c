"""ProofCoach journey steps, page tutorials and step selection.

Pure domain logic with no external dependencies. Step ids are persisted in
coach state, so they are stable and never reordered.
"""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class CoachGuidance:
    intro: str
    instruction: str
    tip: str | None = None
    next_step: str | None = None


@dataclass(frozen=True)
class CompletionCriteria:
    """Progress-snapshot field that marks a step as achieved."""

    check_field: str
    min_value: float | None = None


@dataclass(frozen=True)
class ScoreBand:
    message: str
    min: float | None = None
    max: float | None = None


@dataclass(frozen=True)
class ScoreThresholds:
    low: ScoreBand | None = None
    medium: ScoreBand | None = None
    high: ScoreBand | None = None


@dataclass(frozen=True)
class JourneyStep:
    id: int
    title: str
    description: str
    page: str
    duration: str
    action: str
    guidance: CoachGuidance
    route: str | None = None
    selector: str | None = None
    criteria: CompletionCriteria | None = None
    score_thresholds: ScoreThresholds | None = None


@dataclass(frozen=True)
class TutorialMechanic:
    id: str
    page: str
    title: str
    description: str
    selector: str
    location: str
    order: int
    tips: str | None = None


COACH_JOURNEY_STEPS: list[JourneyStep] = [
    JourneyStep(
        id=0,
        title="Welcome to Second Chance",
        description="Start your validation journey",
        page="landing",
        duration="2 min",
        action="Start Validation",
        route="/onboarding-flow",
        guidance=CoachGuidance(
            intro="Welcome! Let's transform your startup idea into an investor-ready venture.",
            instruction="Click 'Start Validation' to begin your onboarding journey.",
            tip="This process takes about 15 minutes and will give you your first ProofScore.",
            next_step="You'll provide founder details, venture information, and upload your pitch deck.",
        ),
    ),
    JourneyStep(
        id=1,
        title="Complete Onboarding",
        description="Share your founder and venture details",
        page="onboarding",
        duration="10 min",
        action="Continue Onboarding",
        route="/onboarding-flow",
        guidance=CoachGuidance(
            intro="Let's get your startup profile set up.",
            instruction="Complete all onboarding steps: Founder Info, Venture Details, Team, Pitch Deck Upload.",
            tip="Provide detailed information to get a more accurate ProofScore.",
            next_step="After completion, you'll receive your ProofScore analysis.",
        ),
        criteria=CompletionCriteria(check_field="onboarding_complete"),
    ),
    JourneyStep(
        id=2,
        title="Review Your ProofScore",
        description="Understand your validation score and insights",
        page="dashboard",
        duration="5 min",
        action="View Dashboard",
        route="/dashboard",
        selector="[data-testid='proofscore-display']",
        guidance=CoachGuidance(
            intro="Your ProofScore reveals your startup's investment readiness.",
            instruction="Review your score, dimension breakdown, and unlocked ProofTags.",
            tip="ProofScores range from 0-100. Scores of 70+ unlock Deal Room access.",
            next_step="Explore the Validation Map to strengthen weak areas.",
        ),
        score_thresholds=ScoreThresholds(
            low=ScoreBand(max=40, message="Focus on building foundational proof through experiments."),
            medium=ScoreBand(
                min=40,
                max=70,
                message="You're making progress! Complete validation experiments to boost your score.",
            ),
            high=ScoreBand(min=70, message="Excellent! You're ready for Deal Room access."),
        ),
    ),
    JourneyStep(
        id=3,
        title="Explore Validation Map",
        description="Discover your personalized experiments",
        page="validation-map",
        duration="10 min",
        action="Open Validation Map",
        route="/validation-map",
        selector="[data-testid='validation-map-grid']",
        guidance=CoachGuidance(
            intro="Your Validation Map contains curated experiments tailored to your startup.",
            instruction="Review assigned experiments across Desirability, Feasibility, Viability, and Scaling spheres.",
            tip="Each experiment tests a critical assumption about your business model.",
            next_step="Start running experiments and documenting results.",
        ),
    ),
    JourneyStep(
        id=4,
        title="Complete Your First Experiment",
        description="Run and document a validation experiment",
        page="validation-map",
        duration="1-2 weeks",
        action="Start Experiment",
        route="/validation-map",
        guidance=CoachGuidance(
            intro="Time to validate your assumptions with real-world data!",
            instruction="Pick an experiment, define your hypothesis, run it, and record your results.",
            tip="Completed experiments unlock ProofTags and boost your credibility with investors.",
            next_step="Continue completing experiments to strengthen your validation.",
        ),
        criteria=CompletionCriteria(check_field="has_completed_experiment"),
    ),
    JourneyStep(
        id=5,
        title="Build Your ProofVault",
        description="Upload validation documents and proof artifacts",
        page="dashboard",
        duration="15 min",
        action="Upload to ProofVault",
        route="/dashboard",
        selector="[data-testid='proof-vault-section']",
        guidance=CoachGuidance(
            intro="ProofVault is your organized repository of validation evidence.",
            instruction=(
                "Upload documents like customer testimonials, metrics dashboards, "
                "demo videos, and financial models."
            ),
            tip="Each upload increases your VaultScore, showing investors you have systematic proof.",
            next_step="Aim for a VaultScore of 50+ by uploading diverse proof artifacts.",
        ),
        criteria=CompletionCriteria(check_field="vault_score", min_value=30),
    ),
    JourneyStep(
        id=6,
        title="Download Your Certificate",
        description="Get your ProofScore certificate",
        page="dashboard",
        duration="1 min",
        action="Download Certificate",
        route="/dashboard",
        selector="[data-testid='button-download-certificate']",
        guidance=CoachGuidance(
            intro="Your ProofScore certificate validates your systematic approach.",
            instruction="Download and share your certificate with accelerators, investors, or on LinkedIn.",
            tip="This certificate demonstrates you've gone beyond a pitch deck to validate your venture.",
            next_step="Keep improving your score to increase your credibility.",
        ),
    ),
    JourneyStep(
        id=7,
        title="Unlock Deal Room Access",
        description="Connect with verified investors",
        page="dashboard",
        duration="5 min",
        action="Access Deal Room",
        route="/dashboard",
        selector="[data-testid='deal-room-section']",
        guidance=CoachGuidance(
            intro="Deal Room connects high-scoring founders with active investors.",
            instruction="If your ProofScore is 70+, you can unlock premium investor access.",
            tip="Deal Room members get investor introductions, pitch practice, and fundraising support.",
            next_step="Complete payment to activate your Deal Room membership.",
        ),
        criteria=CompletionCriteria(check_field="proof_score", min_value=70),
        score_thresholds=ScoreThresholds(
            low=ScoreBand(max=70, message="Increase your ProofScore to 70+ to unlock Deal Room access."),
            high=ScoreBand(min=70, message="Congratulations! You qualify for Deal Room access."),
        ),
    ),
    JourneyStep(
        id=8,
        title="Activate Premium Features",
        description="Unlock full platform access",
        page="dashboard",
        duration="3 min",
        action="Upgrade Now",
        route="/dashboard",
        guidance=CoachGuidance(
            intro="Premium access unlocks investor matching, pitch coaching, and priority support.",
            instruction="Complete payment to activate your Deal Room membership.",
            tip="Founders who use Deal Room are 3x more likely to secure meetings.",
            next_step="After payment, you'll get immediate access to our investor network.",
        ),
        criteria=CompletionCriteria(check_field="has_deal_room_access"),
    ),
    JourneyStep(
        id=9,
        title="Keep Building Proof",
        description="Continuous validation journey",
        page="dashboard",
        duration="Ongoing",
        action="View Progress",
        route="/dashboard",
        guidance=CoachGuidance(
            intro="Validation is an ongoing process, not a one-time event.",
            instruction="Keep running experiments, uploading proof, and improving your ProofScore.",
            tip="Regular updates show investors you're making progress and learning from data.",
            next_step="Use the Validation Map and ProofVault to systematically strengthen your case.",
        ),
    ),
]

TUTORIAL_MECHANICS: dict[str, list[TutorialMechanic]] = {
    "dashboard": [
        TutorialMechanic(
            id="dashboard-header",
            page="dashboard",
            title="Dashboard Overview",
            description="Your central hub for tracking validation progress, ProofScore, and accessing key features.",
            selector="[data-testid='dashboard-header']",
            location="Top of page",
            order=1,
        ),
        TutorialMechanic(
            id="validation-overview",
            page="dashboard",
            title="Validation Overview",
            description=(
                "Your current ProofScore (0-100) reflects your startup's investment readiness "
                "based on uploaded proof and completed experiments."
            ),
            selector="[data-testid='proofscore-display']",
            tips="ProofScores of 70+ unlock Deal Room access.",
            location="Upper section",
            order=2,
        ),
        TutorialMechanic(
            id="deal-room",
            page="dashboard",
            title="Deal Room Access",
            description="Unlock investor matching and fundraising support with a ProofScore of 70+.",
            selector="[data-testid='deal-room-section']",
            tips="Deal Room members are 3x more likely to secure investor meetings.",
            location="Upper right section",
            order=3,
        ),
        TutorialMechanic(
            id="proof-vault",
            page="dashboard",
            title="ProofVault Management",
            description=(
                "Upload and organize validation documents. Each upload increases your "
                "VaultScore and strengthens your investor case."
            ),
            selector="[data-testid='proof-vault-section']",
            tips="Upload diverse artifacts: testimonials, metrics, videos, financial models.",
            location="Main section",
            order=4,
        ),
        TutorialMechanic(
            id="document-downloads",
            page="dashboard",
            title="Downloads Available",
            description="Download your validation certificate and analysis report after unlocking Deal Room access.",
            selector="[data-testid='document-downloads-section']",
            tips="These documents are perfect for investor decks and pitch materials.",
            location="Lower left section",
            order=5,
        ),
        TutorialMechanic(
            id="community-access",
            page="dashboard",
            title="Community Access",
            description="Connect with other founders and join exclusive founder events.",
            selector="[data-testid='community-access-section']",
            location="Lower right section",
            order=6,
        ),
        TutorialMechanic(
            id="leaderboard",
            page="dashboard",
            title="Leaderboard",
            description="See how you rank against other founders based on ProofScore and ProofTags unlocked.",
            selector="[data-testid='leaderboard-section']",
            location="Bottom left section",
            order=7,
        ),
        TutorialMechanic(
            id="activity-feed",
            page="dashboard",
            title="Recent Activity",
            description="Track your latest platform interactions, uploads, and achievements.",
            selector="[data-testid='activity-feed-section']",
            location="Bottom right section",
            order=8,
        ),
    ],
    "validation-map": [
        TutorialMechanic(
            id="what-are-experiments",
            page="validation-map",
            title="What are Validation Experiments?",
            description=(
                "Experiments are systematic tests of your startup's assumptions. Each one "
                "gathers evidence about whether your business model works."
            ),
            selector="[data-testid='validation-map-intro']",
            tips="Completing experiments unlocks ProofTags and boosts your ProofScore.",
            location="Top section",
            order=1,
        ),
        TutorialMechanic(
            id="validation-spheres",
            page="validation-map",
            title="Four Validation Spheres",
            description=(
                "Your experiments span Desirability (do customers want it?), Feasibility "
                "(can we build it?), Viability (will it make money?) and Scaling (can we grow it?)."
            ),
            selector="[data-testid='validation-map-intro']",
            tips="Balanced validation across all four spheres creates a compelling investor case.",
            location="Introduction card",
            order=2,
        ),
        TutorialMechanic(
            id="add-experiment",
            page="validation-map",
            title="Adding Experiments",
            description="Click 'Add Experiment' to choose a curated experiment or create a custom one.",
            selector="[data-testid='experiment-header-card']",
            tips="Start with 3-5 high-impact experiments. Quality matters more than quantity.",
            location="Top right buttons",
            order=3,
        ),
        TutorialMechanic(
            id="experiment-filters",
            page="validation-map",
            title="Search & Filter Tools",
            description="Search experiments and filter them by validation sphere or by status.",
            selector="[data-testid='experiment-filters-card']",
            tips="Focus on completing experiments in areas where you have the least evidence first.",
            location="Filter section",
            order=4,
        ),
        TutorialMechanic(
            id="table-structure",
            page="validation-map",
            title="Understanding Your Experiment Table",
            description=(
                "Each column is a step of the scientific method: hypothesis, measure, results, "
                "analysis, insights and decision (pivot, persevere, or iterate)."
            ),
            selector="[data-testid='experiment-table-card']",
            tips="Mark experiments 'Complete' to unlock ProofTags.",
            location="Table area",
            order=5,
        ),
        TutorialMechanic(
            id="export-csv",
            page="validation-map",
            title="Export to CSV",
            description=(
                "After completing at least 3 experiments, export your validation map as CSV "
                "and upload it to your ProofVault to boost your VaultScore."
            ),
            selector="[data-testid='experiment-header-card']",
            location="Top right section",
            order=6,
        ),
    ],
}

_STEPS_BY_ID: dict[int, JourneyStep] = {step.id: step for step in COACH_JOURNEY_STEPS}

# First path segment -> page id, for segments that differ from the page name
_PATH_PAGES: dict[str, str] = {
    "onboarding-flow": "onboarding",
    "onboarding": "onboarding",
    "proofscaling": "proof-scaling",
    "proof-scaling": "proof-scaling",
    "deal-room": "deal-room",
    "dashboard": "dashboard",
    "validation-map": "validation-map",
}


def get_journey_step(step_id: int) -> JourneyStep | None:
    return _STEPS_BY_ID.get(step_id)


def steps_for_page(page: str, steps: Iterable[JourneyStep] | None = None) -> list[JourneyStep]:
    """Journey steps attached to ``page``, in declared order."""
    source = COACH_JOURNEY_STEPS if steps is None else steps
    return [step for step in source if step.page == page]


def select_current_step(
    page: str,
    completed: Iterable[int],
    fallback_step: int,
    steps: Iterable[JourneyStep] | None = None,
) -> int:
    """Pick the journey step to show on ``page``.

    Args:
        page: Page id the founder is on
        completed: User-declared completed step ids
        fallback_step: Global current step, used when the page has no steps
        steps: Journey configuration (defaults to COACH_JOURNEY_STEPS)

    Returns:
        The first page step (declared order) not yet completed; the last page
        step when all are completed; ``fallback_step`` when the page has none.
    """
    page_steps = steps_for_page(page, steps)
    if not page_steps:
        return fallback_step

    done = set(completed)
    for step in page_steps:
        if step.id not in done:
            return step.id
    return page_steps[-1].id


def get_tutorials_for_page(page: str) -> list[TutorialMechanic]:
    return sorted(TUTORIAL_MECHANICS.get(page, []), key=lambda t: t.order)


def has_unseen_tutorial(page: str, tutorial_completed_pages: Iterable[str]) -> bool:
    return bool(TUTORIAL_MECHANICS.get(page)) and page not in set(tutorial_completed_pages)


def is_step_completed(completed_journey_steps: Iterable[int], step_id: int) -> bool:
    """User-declared completion only. Never consults progress criteria."""
    return step_id in set(completed_journey_steps)


def _progress_value(progress: Any, field_name: str) -> Any:
    if isinstance(progress, Mapping):
        return progress.get(field_name)
    return getattr(progress, field_name, None)


def is_step_criteria_met(
    step_id: int,
    progress: Any,
    steps: Iterable[JourneyStep] | None = None,
) -> bool:
    """Criterion-derived completion only. Never consults user-declared completion.

    Numeric criteria need ``value >= min_value``; criteria without a minimum
    test truthiness. Steps without a criterion, unknown steps and a missing
    progress snapshot are never met.
    """
    if progress is None:
        return False

    if steps is None:
        step = get_journey_step(step_id)
    else:
        step = next((s for s in steps if s.id == step_id), None)
    if step is None or step.criteria is None:
        return False

    value = _progress_value(progress, step.criteria.check_field)
    if step.criteria.min_value is None:
        return bool(value)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value >= step.criteria.min_value


def page_for_path(path: str) -> str:
    """Map a route path (``/dashboard/vault?x=1``) to a page id."""
    clean = path.split("?", 1)[0].split("#", 1)[0].strip("/")
    if not clean:
        return "landing"
    segment = clean.split("/", 1)[0]
    return _PATH_PAGES.get(segment, segment)


def score_message(step: JourneyStep, score: float) -> str | None:
    """Pick the low/medium/high threshold message for ``score``.

    Returns None when the step has no thresholds or no band matches.
    """
    thresholds = step.score_thresholds
    if thresholds is None:
        return None

    high = thresholds.high
    if high is not None and high.min is not None and score >= high.min:
        return high.message

    medium = thresholds.medium
    if medium is not None:
        above_min = medium.min is None or score >= medium.min
        below_max = medium.max is None or score < medium.max
        if above_min and below_max:
            return medium.message

    low = thresholds.low
    if low is not None and (low.max is None or score < low.max):
        return low.message

    return None
