# Scoring stages module
from .stage1_factors import FactorExtractionStage
from .stage2_scoring import WeightedScoringStage
from .stage3_insights import InsightGenerationStage
