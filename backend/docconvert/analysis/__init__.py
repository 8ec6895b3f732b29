from docconvert.analysis.service import AnalysisService, build_prompt
from docconvert.analysis.stream import TextStream

__all__ = ["AnalysisService", "TextStream", "build_prompt"]
