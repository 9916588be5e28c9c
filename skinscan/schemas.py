from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OutcomeState(str, Enum):
	completed = "completed"
	fallback = "fallback"
	empty_response = "empty_response"
	parse_error = "parse_error"


class RawModelReply(BaseModel):
	"""The parts of a chat completion the classifier looks at."""

	model_config = ConfigDict(frozen=True)

	content: Optional[str] = None
	refusal: Optional[str] = None
	finish_reason: Optional[str] = None


# Canonical report

class Issue(CamelModel):
	name: str
	severity: str = "mild"
	location: str = ""
	description: str = ""
	confidence: Optional[float] = None


class Routine(CamelModel):
	morning: List[str] = Field(default_factory=list)
	evening: List[str] = Field(default_factory=list)


class CanonicalReport(CamelModel):
	issues: List[Issue] = Field(default_factory=list)
	recommendations: List[str] = Field(default_factory=list)
	overall_assessment: str = ""
	skin_type: str = "unknown"
	routine: Routine = Field(default_factory=Routine)
	ingredients_to_consider: List[str] = Field(default_factory=list)
	avoid_if_sensitive: List[str] = Field(default_factory=list)


# Scans

class AnalyzeRequest(BaseModel):
	image: Optional[str] = None


class AnalyzeResponse(CamelModel):
	success: bool = True
	analysis: CanonicalReport
	raw_analysis: Dict[str, Any]
	scan_id: Optional[str] = None
	status: OutcomeState
	timings: Dict[str, float] = Field(default_factory=dict)


class ScanRecord(CamelModel):
	id: str | int
	user_id: str
	issues: List[Dict[str, Any]] = Field(default_factory=list)
	recommendations: List[str] = Field(default_factory=list)
	created_at: Optional[str] = None

	@field_validator("issues", "recommendations", mode="before")
	@classmethod
	def null_to_empty(cls, v: Any) -> Any:
		return [] if v is None else v


class ScanListResponse(BaseModel):
	scans: List[ScanRecord]


class ScanStats(CamelModel):
	total_scans: int
	total_issues: int
	last_scan: Optional[str] = None


# Identity and profiles

class UserIdentity(BaseModel):
	id: str
	email: Optional[str] = None


class Credentials(BaseModel):
	email: Optional[str] = None
	password: Optional[str] = None


class ProfileResponse(CamelModel):
	id: str
	email: Optional[str] = None
	role: str = "user"
	created_at: Optional[str] = None


class RoleUpdate(BaseModel):
	role: Optional[str] = None


class AdminStats(CamelModel):
	total_users: int
	total_scans: int
	total_issues: int
	users_today: int
	scans_today: int
	avg_scans_per_user: float
