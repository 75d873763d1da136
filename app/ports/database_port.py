from abc import ABC

from app.ports.interaction_port import InteractionPort
from app.ports.job_port import JobPort
from app.ports.resume_port import ResumePort
from app.ports.user_port import UserPort


class DatabasePort(UserPort, JobPort, InteractionPort, ResumePort, ABC):
    """
    Aggregate port for CRUD operations against the data store.
    Inherits from domain-specific ports to strictly follow ISP.
    """
