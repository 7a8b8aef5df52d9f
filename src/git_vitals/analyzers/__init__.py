"""History analyzers. Each takes parsed records and returns one frozen result."""

from .activity import ActivityAnalysis, analyze_commit_activity
from .churn import ChurnAnalysis, FileChangeStats, analyze_file_churn
from .classification import CommitCategory, CommitTypeAnalysis, analyze_commit_types, classify_message
from .cochange import CoChangeAnalysis, FilePairStats, analyze_cochange
from .deployments import Deployment, DeploymentAnalysis, DeploymentAnalyzer
from .lead_time import CommitLeadTime, LeadTimeAnalysis, LeadTimeAnalyzer
from .ownership import FileOwnershipStats, OwnershipAnalysis, analyze_file_ownership
from .reverts import RevertAnalysis, analyze_reverts
from .sizing import SizeAnalysis, analyze_commit_sizes

__all__ = [
    "ActivityAnalysis",
    "ChurnAnalysis",
    "CoChangeAnalysis",
    "CommitCategory",
    "CommitLeadTime",
    "CommitTypeAnalysis",
    "Deployment",
    "DeploymentAnalysis",
    "DeploymentAnalyzer",
    "FileChangeStats",
    "FileOwnershipStats",
    "FilePairStats",
    "LeadTimeAnalysis",
    "LeadTimeAnalyzer",
    "OwnershipAnalysis",
    "RevertAnalysis",
    "SizeAnalysis",
    "analyze_cochange",
    "analyze_commit_activity",
    "analyze_commit_sizes",
    "analyze_commit_types",
    "analyze_file_churn",
    "analyze_file_ownership",
    "analyze_reverts",
    "classify_message",
]
