from .iam import User as User
from .analysis import Analysis as Analysis
from .enums import AnalysisStatus as AnalysisStatus, PlayerColor as PlayerColor
