from deepagent.config.execution import ExecutionConfig, SummarizationConfig
from deepagent.config.settings import DeepAgentSettings, settings

__all__ = ["DeepAgentSettings", "ExecutionConfig", "SummarizationConfig", "settings"]
