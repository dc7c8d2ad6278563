"""Field standardization - map free-text research fields to canonical disciplines."""

import logging
import re
from typing import Dict, Iterable, List, Optional, Set, Union

logger = logging.getLogger(__name__)

DEFAULT_FIELD_TAG = "N/A"
FIELD_FIX_DEFAULT_TAG = "STEM"

# Category order matters: a token is assigned to the first category that matches.
CATEGORY_KEYWORDS: Dict[str, List[str]] = {
    "Biology": [
        "biology", "biomedical", "biomed", "bio", "genomics", "neuroscience", "ecology", "molecular",
        "biochemistry", "bioinformatics", "microbiology", "genetics", "cell", "physiology",
        "biotechnology", "immunology", "marine biology", "zoology", "botany", "developmental",
        "virology", "pathology", "pharmacology", "systems biology", "synthetic biology",
        "evolutionary biology", "structural biology", "plant science", "parasitology", "histology",
        "embryology", "endocrinology", "entomology", "biomedicine", "biophysics",
        "computational biology", "biomedical science", "molecular biology", "cell biology",
        "developmental biology", "cancer biology", "stem cell", "proteomics", "metabolomics",
        "conservation biology", "population biology", "organismal biology", "plant biology",
        "animal biology", "microbial biology",
    ],
    "Chemistry": [
        "chemistry", "chem", "biochem", "organic", "inorganic", "analytical", "physical chemistry",
        "materials chemistry", "polymer", "synthesis", "catalysis", "electrochemistry",
        "spectroscopy", "computational chemistry", "medicinal chemistry", "photochemistry",
        "thermochemistry", "radiochemistry", "nuclear chemistry", "surface chemistry",
        "crystallography", "green chemistry", "organometallic", "quantum chemistry",
        "stereochemistry", "materials science", "analytical chemistry", "synthetic chemistry",
        "organic synthesis", "inorganic synthesis", "chemical biology", "chemical physics",
        "chemical engineering", "pharmaceutical chemistry", "environmental chemistry",
        "atmospheric chemistry", "food chemistry", "forensic chemistry", "industrial chemistry",
        "nanochemistry",
    ],
    "Physics": [
        "physics", "astrophysics", "astronomy", "astro", "quantum", "optics", "mechanics",
        "particle", "condensed matter", "plasma", "nuclear", "theoretical", "experimental physics",
        "cosmology", "relativity", "atomic physics", "molecular physics", "geophysics",
        "thermodynamics", "electromagnetism", "acoustics", "fluid dynamics", "statistical physics",
        "high energy physics", "laser physics", "nanophysics", "nanoscience", "quantum mechanics",
        "quantum field theory", "string theory", "gravitational physics", "particle physics",
        "nuclear physics", "solid state physics", "materials physics", "optical physics",
        "plasma physics", "computational physics", "mathematical physics", "medical physics",
    ],
    "Engineering": [
        "engineering", "mechanical", "electrical", "civil", "chemical", "bioengineering",
        "aerospace", "materials", "robotics", "control systems", "industrial", "manufacturing",
        "systems engineering", "nanotechnology", "biomechanical", "environmental engineering",
        "software engineering", "computer engineering", "structural engineering", "mechatronics",
        "automotive", "nuclear engineering", "petroleum engineering", "telecommunications",
        "microelectronics", "photonics", "power systems", "renewable energy", "systems science",
        "biomedical engineering", "tissue engineering", "genetic engineering", "neural engineering",
        "biomaterials", "biosystems", "agricultural engineering", "food engineering",
        "process engineering", "reliability engineering", "quality engineering",
        "safety engineering", "construction engineering", "transportation engineering",
        "water resources engineering",
    ],
    "Computer Science": [
        "computer", "computing", "computational", "cs", "data science", "machine learning",
        "artificial intelligence", "ai", "ml", "software", "programming", "algorithms",
        "cybersecurity", "networks", "database", "web development", "cloud computing", "systems",
        "computer vision", "natural language processing", "parallel computing",
        "distributed systems", "operating systems", "computer graphics",
        "human-computer interaction", "information security", "blockchain", "quantum computing",
        "embedded systems", "mobile computing", "internet of things", "iot", "data analytics",
        "information science", "deep learning", "neural networks", "reinforcement learning",
        "computer architecture", "compiler design", "web technologies", "mobile development",
        "cloud architecture", "devops", "big data", "data mining", "information retrieval",
        "computer networks", "network security",
    ],
    "Mathematics": [
        "mathematics", "math", "applied mathematics", "statistics", "calculus", "algebra",
        "geometry", "topology", "number theory", "analysis", "probability", "discrete math",
        "mathematical modeling", "operations research", "cryptography", "differential equations",
        "numerical analysis", "optimization", "graph theory", "combinatorics",
        "mathematical biology", "financial mathematics", "actuarial science", "game theory",
        "chaos theory", "category theory", "logic", "linear algebra", "abstract algebra",
        "real analysis", "complex analysis", "functional analysis", "algebraic geometry",
        "differential geometry", "algebraic topology", "dynamical systems",
        "stochastic processes", "mathematical statistics", "computational mathematics",
        "mathematical logic", "set theory", "coding theory",
    ],
    "Earth Science": [
        "earth", "geology", "environmental", "climate", "oceanography", "atmospheric",
        "geography", "meteorology", "hydrology", "seismology", "soil science", "sustainability",
        "paleontology", "mineralogy", "petrology", "volcanology", "glaciology", "climatology",
        "biogeochemistry", "remote sensing", "geochemistry", "planetary science",
        "marine science", "coastal science", "natural resources", "conservation",
        "environmental science", "atmospheric science", "climate science",
        "earth system science", "geomorphology", "hydrogeology", "sedimentology", "stratigraphy",
        "tectonics", "quaternary science", "environmental geology", "economic geology",
        "petroleum geology", "engineering geology", "environmental geochemistry",
        "paleoclimatology", "paleoecology", "paleobiology",
    ],
    "Social Science": [
        "psychology", "sociology", "anthropology", "economics", "political", "social",
        "behavioral", "cognitive", "linguistics", "archaeology", "human development",
        "education research", "criminology", "demography", "urban studies", "public policy",
        "international relations", "cultural studies", "gender studies", "communication studies",
        "social psychology", "developmental psychology", "clinical psychology",
        "cognitive science", "science education", "science communication", "science policy",
        "environmental psychology", "organizational psychology", "educational psychology",
        "forensic psychology", "health psychology", "industrial psychology",
        "community psychology", "counseling psychology", "evolutionary psychology",
        "positive psychology", "sports psychology", "behavioral economics", "political economy",
        "social anthropology", "cultural anthropology", "linguistic anthropology",
    ],
    "STEM": [
        "stem", "science", "technology", "innovation", "discovery", "experimentation",
        "technical", "scientific method", "empirical research", "applied science",
        "fundamental research", "food science", "agricultural science", "health science",
        "library science", "management science", "network science", "web science",
        "interdisciplinary science", "multidisciplinary research", "translational research",
        "experimental design", "research methodology", "scientific computing",
        "scientific visualization",
    ],
}

CANONICAL_FIELDS = frozenset(CATEGORY_KEYWORDS)

# Filler words that never name a discipline on their own.
EXCLUDED_TERMS = frozenset([
    "other", "on", "forming a", "week summer", "the", "based", "developing", "this",
    "interest in", "or", "term", "lter", "reu provides", "person", "weekly", "on contemporar",
    "depth", "present", "our undergraduate", "edge", "related", "conduct original",
    "tours of institution", "doctoral", "craft robust", "to conduct", "then a", "sponsored",
    "offers a", "paid", "work", "summer", "reu", "multiple disciplines", "institutional",
    "funded", "research", "study", "program", "programs", "experience", "opportunity",
    "project", "lab", "laboratory", "student", "students", "faculty", "mentor", "mentors",
    "university", "college", "department", "institute", "center", "school", "academy",
    "studies", "education", "learning", "teaching", "training", "workshop", "seminar",
    "conference", "symposium", "course", "class", "session", "year", "semester", "quarter",
    "spring", "fall", "winter", "academic", "undergraduate", "graduate", "phd", "postdoc",
    "professor", "assistant", "associate",
])

_FIELD_SPLIT_RE = re.compile(r"[,;/]|\s+and\s+|\s*&\s*", re.IGNORECASE)
_WORD_SPLIT_RE = re.compile(r"[\s,;.()\[\]{}]+")
_NUMERIC_RE = re.compile(r"\d")
_SHORT_KEYWORD_LEN = 3


def _compile_matchers() -> Dict[str, List[re.Pattern]]:
    matchers: Dict[str, List[re.Pattern]] = {}
    for category, keywords in CATEGORY_KEYWORDS.items():
        patterns = []
        for keyword in keywords:
            escaped = re.escape(keyword)
            if len(keyword) <= _SHORT_KEYWORD_LEN:
                # "cs" must not fire on "physics", nor "ai" on "training"
                escaped = rf"\b{escaped}\b"
            patterns.append(re.compile(escaped))
        matchers[category] = patterns
    return matchers


_MATCHERS = _compile_matchers()
_CANONICAL_BY_LOWER = {name.lower(): name for name in CATEGORY_KEYWORDS}


def split_field_text(field_input: Union[str, Iterable, None]) -> List[str]:
    """Split raw field input into candidate tokens."""
    if field_input is None:
        return []
    if isinstance(field_input, str):
        return [part.strip() for part in _FIELD_SPLIT_RE.split(field_input) if part and part.strip()]
    return [str(item).strip() for item in field_input if item is not None and str(item).strip()]


def _is_excluded(token: str) -> bool:
    return token in EXCLUDED_TERMS or bool(_NUMERIC_RE.search(token))


def classify_token(token: str) -> Optional[str]:
    """Return the canonical category for one lower-cased token, if any."""
    if token in _CANONICAL_BY_LOWER:
        return _CANONICAL_BY_LOWER[token]
    for category, patterns in _MATCHERS.items():
        if any(pattern.search(token) for pattern in patterns):
            return category
    return None


def standardize_fields(
    field_input: Union[str, Iterable, None],
    description: Optional[str] = "",
    title: Optional[str] = "",
    default: str = DEFAULT_FIELD_TAG,
) -> Set[str]:
    """Classify field/keyword/title/description text into canonical disciplines.

    Args:
        field_input: Comma/semicolon/"and" separated string, or a list of tokens.
        description: Free text whose words are added to the token pool.
        title: Free text whose words are added to the token pool.
        default: Tag returned when nothing matches.

    Returns:
        Non-empty set of canonical category names (or ``{default}``).
    """
    pool = split_field_text(field_input)
    for text in (title, description):
        if text:
            pool.extend(_WORD_SPLIT_RE.split(text))

    standardized: Set[str] = set()
    for raw_token in pool:
        token = raw_token.lower().strip()
        if len(token) <= 2 or _is_excluded(token):
            continue
        category = classify_token(token)
        if category:
            standardized.add(category)

    if not standardized:
        standardized.add(default)
    return standardized


class FieldStandardizer:
    """Field standardizer bound to a configured no-match default."""

    def __init__(self, default: str = DEFAULT_FIELD_TAG):
        self.default = default

    def standardize(
        self,
        field_input: Union[str, Iterable, None],
        description: Optional[str] = "",
        title: Optional[str] = "",
    ) -> Set[str]:
        return standardize_fields(field_input, description, title, default=self.default)

    def standardize_list(
        self,
        field_input: Union[str, Iterable, None],
        description: Optional[str] = "",
        title: Optional[str] = "",
    ) -> List[str]:
        """Standardize and return tags in taxonomy order, as stores keep them."""
        tags = self.standardize(field_input, description, title)
        ordered = [name for name in CATEGORY_KEYWORDS if name in tags]
        ordered.extend(sorted(tags - CANONICAL_FIELDS))
        return ordered
