"""Compatibility scoring, distance estimation and match ranking."""

from .distance import DistanceEstimator, HttpGeocoder, format_distance, parse_location
from .models import MatchContext, MatchRecord
from .ranking import MatchRanker, RankCoordinator, extract_allergy_info, placeholder_matches
from .scoring import CompatibilityScorer

__all__ = [
	"CompatibilityScorer",
	"DistanceEstimator",
	"HttpGeocoder",
	"MatchContext",
	"MatchRanker",
	"MatchRecord",
	"RankCoordinator",
	"extract_allergy_info",
	"format_distance",
	"parse_location",
	"placeholder_matches",
]
