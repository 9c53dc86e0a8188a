# __init__.py
from skillgap.models.resume import Resume
from skillgap.models.skill_gap_analysis import SkillGapAnalysis
from skillgap.models.affiliate_event import AffiliateEvent
from skillgap.models.occupation_cache import OccupationCacheEntry
from skillgap.models.tracked_skill import TrackedSkill

__all__ = [
	"Resume",
	"SkillGapAnalysis",
	"AffiliateEvent",
	"OccupationCacheEntry",
	"TrackedSkill",
]
