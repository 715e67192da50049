# __init__.py
from skillhire.models.application import Application
from skillhire.models.jobs import Job
from skillhire.models.profile import Profile
from skillhire.models.quiz import Quiz, QuizAnswer, QuizQuestion
from skillhire.models.skills import EmployeeSkill, JobSkill, Skill

__all__ = [
	"Application",
	"EmployeeSkill",
	"Job",
	"JobSkill",
	"Profile",
	"Quiz",
	"QuizAnswer",
	"QuizQuestion",
	"Skill",
]
