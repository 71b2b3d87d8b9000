"""
Mistake Pattern Catalog

Static, immutable tables of known failure modes.

A catalog is READ-ONLY input to every other component:
- The Aggregator drops instances whose pattern is not catalogued
- The Trend Classifier never consults it
- The Insight Generator reads remediation text and related concepts
- The Statistics Reducer reads categories

Two catalogs are compiled in:
1. ERROR_PATTERN_CATALOG - physics problem-solving error patterns
2. SPOT_MISTAKE_CATALOG - mistake types planted in "spot the mistake" solutions
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple


# -----------------------------------------------------------------------------
# Severity Enum (LOCKED - EXACTLY 3 VALUES)
# -----------------------------------------------------------------------------
class Severity(str, Enum):
    """Impact of a failure mode on problem solving."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK: Dict[Severity, int] = {
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


# -----------------------------------------------------------------------------
# Mistake Pattern (Frozen - Immutable)
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class MistakePattern:
    """
    A catalogued failure mode.

    FROZEN: loaded once, never modified.
    """
    id: str
    category: str
    severity: Severity
    remediation: str
    related_concepts: Tuple[str, ...] = ()
    title: str = ""
    description: str = ""
    common_in: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.id:
            raise ValueError("pattern id cannot be empty")
        if not isinstance(self.severity, Severity):
            # Accept raw strings from table definitions, reject unknown values
            object.__setattr__(self, "severity", Severity(self.severity))

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "category": self.category,
            "severity": self.severity.value,
            "remediation": self.remediation,
            "related_concepts": list(self.related_concepts),
            "title": self.title,
            "description": self.description,
            "common_in": list(self.common_in),
        }


# -----------------------------------------------------------------------------
# Pattern Catalog
# -----------------------------------------------------------------------------
class PatternCatalog:
    """
    Immutable lookup table of mistake patterns keyed by id.

    Iteration preserves definition order.
    """

    def __init__(self, name: str, patterns: Iterable[MistakePattern]):
        entries: Dict[str, MistakePattern] = {}
        for pattern in patterns:
            if pattern.id in entries:
                raise ValueError(f"Duplicate pattern id in catalog {name}: {pattern.id}")
            entries[pattern.id] = pattern
        self._name = name
        self._entries = entries

    @property
    def name(self) -> str:
        return self._name

    def get(self, pattern_id: str) -> Optional[MistakePattern]:
        return self._entries.get(pattern_id)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._entries

    def __iter__(self) -> Iterator[MistakePattern]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> List[str]:
        return list(self._entries)

    def categories(self) -> List[str]:
        """Distinct categories, in definition order."""
        seen: List[str] = []
        for pattern in self._entries.values():
            if pattern.category not in seen:
                seen.append(pattern.category)
        return seen

    def by_category(self, category: str) -> List[MistakePattern]:
        return [p for p in self._entries.values() if p.category == category]

    def __repr__(self) -> str:
        return f"PatternCatalog(name={self._name!r}, patterns={len(self._entries)})"


# -----------------------------------------------------------------------------
# Physics Error Patterns
# -----------------------------------------------------------------------------
ERROR_PATTERN_CATALOG = PatternCatalog("error_patterns", [
    MistakePattern(
        id="EP001",
        category="method-selection",
        severity=Severity.HIGH,
        title="Chooses energy when force analysis is required",
        description=(
            "Attempts energy conservation or the work-energy theorem when the problem "
            "requires force analysis with Newton's laws."
        ),
        common_in=("Mechanics", "Dynamics", "Circular Motion"),
        remediation=(
            "Practice identifying when forces are changing or when instantaneous "
            "quantities (force, acceleration) are asked for."
        ),
        related_concepts=("Newton's Laws", "Work-Energy Theorem", "Force Analysis"),
    ),
    MistakePattern(
        id="EP002",
        category="conservation-misapplication",
        severity=Severity.HIGH,
        title="Applies conservation when external work exists",
        description=(
            "Uses energy or momentum conservation where external forces do work "
            "or external impulses act."
        ),
        common_in=("Mechanics", "Collisions", "Energy"),
        remediation=(
            "Always check: Are there external forces? Is the system isolated? "
            "Draw a system boundary."
        ),
        related_concepts=("Conservation Laws", "System vs Surroundings", "External Forces"),
    ),
    MistakePattern(
        id="EP003",
        category="sign-convention",
        severity=Severity.MEDIUM,
        title="Gets sign conventions wrong in 1D motion",
        description="Inconsistent positive/negative directions in kinematics problems.",
        common_in=("Kinematics", "1D Motion", "Projectile Motion"),
        remediation="Always define the coordinate system first and keep that convention throughout.",
        related_concepts=("Vectors", "Coordinate Systems", "Kinematics"),
    ),
    MistakePattern(
        id="EP004",
        category="vector-scalar-confusion",
        severity=Severity.HIGH,
        title="Treats vector quantity as scalar",
        description="Adds or manipulates vector quantities without considering direction.",
        common_in=("Vectors", "Force", "Velocity", "Electric Field"),
        remediation="Always ask: is this a vector? If yes, use components or vector addition rules.",
        related_concepts=("Vector Addition", "Components", "Direction"),
    ),
    MistakePattern(
        id="EP005",
        category="reference-frame",
        severity=Severity.HIGH,
        title="Mixes reference frames in analysis",
        description=(
            "Switches between reference frames (ground, moving observer) "
            "without a proper transformation."
        ),
        common_in=("Relative Motion", "Rotating Systems", "Non-inertial Frames"),
        remediation=(
            "Choose ONE reference frame and stick to it. Use relative "
            "velocity/acceleration formulas explicitly."
        ),
        related_concepts=("Reference Frames", "Relative Motion", "Pseudo Forces"),
    ),
    MistakePattern(
        id="EP006",
        category="assumption-violation",
        severity=Severity.MEDIUM,
        title="Assumes massless string/pulley when mass matters",
        description="Treats strings or pulleys as massless when their mass affects the result.",
        common_in=("Pulleys", "Rotational Motion", "Atwood Machine"),
        remediation="Read the problem carefully. If a mass is given, it matters; include it.",
        related_concepts=("Pulleys", "Tension", "Rotational Inertia"),
    ),
    MistakePattern(
        id="EP007",
        category="unit-conversion",
        severity=Severity.LOW,
        title="Forgets to convert units before calculation",
        description="Mixes units (cm with m, minutes with seconds) without conversion.",
        common_in=("All Topics",),
        remediation="Convert ALL quantities to SI units BEFORE starting calculations.",
        related_concepts=("Units", "Dimensional Analysis"),
    ),
    MistakePattern(
        id="EP008",
        category="conceptual-confusion",
        severity=Severity.MEDIUM,
        title="Confuses displacement with distance traveled",
        description="Uses distance where displacement is needed, or vice versa.",
        common_in=("Kinematics", "Work", "Energy"),
        remediation=(
            "Displacement is a vector (shortest path), distance is a scalar "
            "(actual path). Work uses displacement."
        ),
        related_concepts=("Displacement", "Distance", "Work"),
    ),
    MistakePattern(
        id="EP009",
        category="algebra-manipulation",
        severity=Severity.LOW,
        title="Makes algebraic errors with squared terms",
        description="Mishandles squared terms, especially in kinematic equations.",
        common_in=("Kinematics", "Energy", "SHM"),
        remediation="(a+b)^2 is not a^2+b^2. When squaring, expand carefully.",
        related_concepts=("Algebra", "Kinematic Equations"),
    ),
    MistakePattern(
        id="EP010",
        category="boundary-conditions",
        severity=Severity.HIGH,
        title="Ignores constraints in the problem",
        description="Misses stated constraints such as 'string remains taut' or 'block doesn't slip'.",
        common_in=("Constraints", "Mechanics", "Rotational Motion"),
        remediation="Underline ALL constraint statements. They give extra equations.",
        related_concepts=("Constraints", "Additional Equations", "Problem Reading"),
    ),
    MistakePattern(
        id="EP011",
        category="method-selection",
        severity=Severity.MEDIUM,
        title="Uses complicated method when simple one exists",
        description="Takes a long algebraic route when symmetry or a conservation law is quicker.",
        common_in=("All Topics",),
        remediation="Before solving, check for symmetry, conservation laws, or special cases.",
        related_concepts=("Problem Solving Strategy", "Efficiency"),
    ),
    MistakePattern(
        id="EP012",
        category="conceptual-confusion",
        severity=Severity.HIGH,
        title="Confuses normal force with weight",
        description="Assumes the normal force always equals weight, even in accelerating systems.",
        common_in=("Forces", "Circular Motion", "Lifts/Elevators"),
        remediation="Normal force is the perpendicular contact force, NOT always the weight. Use F=ma.",
        related_concepts=("Normal Force", "Weight", "Contact Forces"),
    ),
])


# -----------------------------------------------------------------------------
# Spot-the-Mistake Types
# -----------------------------------------------------------------------------
SPOT_MISTAKE_CATALOG = PatternCatalog("spot_mistake_patterns", [
    MistakePattern(
        id="sign_convention",
        category="sign-convention",
        severity=Severity.MEDIUM,
        title="Wrong sign for forces or vectors",
        remediation="Fix a positive direction before writing any equation and check every term against it.",
        related_concepts=("Coordinate Systems", "Vectors"),
    ),
    MistakePattern(
        id="reference_frame",
        category="reference-frame",
        severity=Severity.HIGH,
        title="Wrong reference frame choice",
        remediation="Name the frame each step is written in; add pseudo forces in non-inertial frames.",
        related_concepts=("Reference Frames", "Pseudo Forces"),
    ),
    MistakePattern(
        id="conservation_violation",
        category="conservation-misapplication",
        severity=Severity.HIGH,
        title="Incorrectly assumes conservation",
        remediation="Check for external forces and non-conservative work before conserving anything.",
        related_concepts=("Conservation Laws", "External Forces"),
    ),
    MistakePattern(
        id="force_identification",
        category="force-identification",
        severity=Severity.HIGH,
        title="Missing or incorrect force",
        remediation="Draw a free-body diagram and account for every contact and field force.",
        related_concepts=("Free-Body Diagrams", "Newton's Laws"),
    ),
    MistakePattern(
        id="concept_confusion",
        category="conceptual-confusion",
        severity=Severity.MEDIUM,
        title="Mixing up concepts",
        remediation="State which principle each step uses (energy, momentum, force) and why it applies.",
        related_concepts=("Energy", "Momentum"),
    ),
    MistakePattern(
        id="coordinate_system",
        category="coordinate-system",
        severity=Severity.LOW,
        title="Wrong coordinate choice",
        remediation="Align axes with the motion or the incline to keep components simple.",
        related_concepts=("Coordinate Systems", "Components"),
    ),
    MistakePattern(
        id="initial_conditions",
        category="boundary-conditions",
        severity=Severity.MEDIUM,
        title="Wrong boundary or initial conditions",
        remediation="List the known values at t=0 and at the boundaries before integrating or substituting.",
        related_concepts=("Initial Conditions", "Constraints"),
    ),
    MistakePattern(
        id="vector_scalar_confusion",
        category="vector-scalar-confusion",
        severity=Severity.HIGH,
        title="Treating vector as scalar",
        remediation="Resolve vectors into components before adding or comparing them.",
        related_concepts=("Vector Addition", "Components"),
    ),
])
