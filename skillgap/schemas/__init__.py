# __init__.py
from skillgap.schemas.affiliate import (
	AffiliateMetrics,
	ClickEventRequest,
	ClickEventResponse,
	ConversionEventRequest,
	ConversionEventResponse,
	Course,
	CourseCandidate,
	CourseRecommendation,
	CourseRecommendationRequest,
	CourseRecommendationResponse,
	MetricValidation,
	RevenueReport,
	RevenueValidationResult,
	UserPreferences,
)
from skillgap.schemas.analysis import (
	AnalysisMetadata,
	AnalyzeRequest,
	AnalyzeResponse,
	ExplainTransferRequest,
	ResumeSkill,
	RoadmapPhase,
	SkillGap,
	SkillGapAnalysisRead,
	TransferExplanation,
	TransferableSkill,
	TransferableSkillsRequest,
	TransferableSkillsResult,
	UserWarning,
)
from skillgap.schemas.occupation import KnowledgeArea, LaborMarketData, OccupationSkill, OccupationSkills, OccupationSummary
from skillgap.schemas.progress import (
	HistoricalAnalysisSummary,
	HistoryResponse,
	ProgressReport,
	ProgressSyncResponse,
	ProgressUpdateRequest,
	Trajectory,
	TrajectoryResponse,
)
from skillgap.schemas.resume import ResumeCreate, ResumeRead, ResumeUpdate, TrackedSkillRead, TrackedSkillUpsert

__all__ = [
	"AffiliateMetrics",
	"ClickEventRequest",
	"ClickEventResponse",
	"ConversionEventRequest",
	"ConversionEventResponse",
	"Course",
	"CourseCandidate",
	"CourseRecommendation",
	"CourseRecommendationRequest",
	"CourseRecommendationResponse",
	"MetricValidation",
	"RevenueReport",
	"RevenueValidationResult",
	"UserPreferences",
	"AnalysisMetadata",
	"AnalyzeRequest",
	"AnalyzeResponse",
	"ExplainTransferRequest",
	"ResumeSkill",
	"RoadmapPhase",
	"SkillGap",
	"SkillGapAnalysisRead",
	"TransferExplanation",
	"TransferableSkill",
	"TransferableSkillsRequest",
	"TransferableSkillsResult",
	"UserWarning",
	"KnowledgeArea",
	"LaborMarketData",
	"OccupationSkill",
	"OccupationSkills",
	"OccupationSummary",
	"HistoricalAnalysisSummary",
	"HistoryResponse",
	"ProgressReport",
	"ProgressSyncResponse",
	"ProgressUpdateRequest",
	"Trajectory",
	"TrajectoryResponse",
	"ResumeCreate",
	"ResumeRead",
	"ResumeUpdate",
	"TrackedSkillRead",
	"TrackedSkillUpsert",
]
