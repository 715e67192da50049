# __init__.py
from skillhire.schemas.applications import ApplicationCreate, ApplicationRead, ApplicationStatusUpdate
from skillhire.schemas.jobs import JobCreate, JobRead, JobUpdate
from skillhire.schemas.quizzes import GeneratedQuestion, GenerateQuizRequest, GenerateQuizResponse, SkillRef, SkillSelection
from skillhire.schemas.skills import EmployeeSkillRead, EmployeeSkillsUpdate, SkillCreate, SkillRead
from skillhire.schemas.user import ProfileRead, TokenData

__all__ = [
	"ApplicationCreate",
	"ApplicationRead",
	"ApplicationStatusUpdate",
	"JobCreate",
	"JobRead",
	"JobUpdate",
	"GeneratedQuestion",
	"GenerateQuizRequest",
	"GenerateQuizResponse",
	"SkillRef",
	"SkillSelection",
	"EmployeeSkillRead",
	"EmployeeSkillsUpdate",
	"SkillCreate",
	"SkillRead",
	"ProfileRead",
	"TokenData",
]
