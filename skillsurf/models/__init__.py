from skillsurf.models.owner import Owner
from skillsurf.models.repo import Repo
from skillsurf.models.skill import Skill
from skillsurf.models.tag import SkillTag, Tag

__all__ = ["Owner", "Repo", "Skill", "SkillTag", "Tag"]
