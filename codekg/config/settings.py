"""
Settings Models
===============

Pydantic models for every tunable of the retrieval engine and query pipeline.

Settings are loaded from YAML (packaged default: ``codekg/config/codekg.yaml``).
Any key left out of the YAML keeps its default, and a missing file falls back
to the defaults entirely.

Example YAML:
    retrieval:
      score_threshold: 0.1
      expansion_depth: 1
      fusion:
        lexical_weight: 0.5
        vector_weight: 0.5
    pipeline:
      max_refinements: 3
"""

from pydantic import BaseModel, Field, field_validator, model_validator


class FusionWeights(BaseModel):
    """
    Weights used to fuse lexical and vector scores.

    Attributes:
        lexical_weight: Weight of the normalized lexical score
        vector_weight: Weight of the normalized vector score
        single_signal_discount: Multiplier for nodes found by only one signal
    """
    lexical_weight: float = Field(default=0.5, gt=0.0, description="Lexical score weight")
    vector_weight: float = Field(default=0.5, gt=0.0, description="Vector score weight")
    single_signal_discount: float = Field(
        default=0.5, gt=0.0, le=1.0,
        description="Scale applied to a node matched by a single signal"
    )

    def normalized(self) -> tuple[float, float]:
        """Return (lexical, vector) weights rescaled to sum to 1."""
        total = self.lexical_weight + self.vector_weight
        return self.lexical_weight / total, self.vector_weight / total


class RetrievalSettings(BaseModel):
    """Hybrid retrieval tunables. Defaults keep expansion shallow."""
    score_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    initial_limit: int = Field(default=20, ge=1, description="Max seeds taken from the ranking")
    lexical_limit: int = Field(default=50, ge=1)
    vector_limit: int = Field(default=50, ge=1)
    expansion_depth: int = Field(default=1, ge=0, description="Max hops from the seeds")
    expansion_node_cap: int = Field(default=100, ge=1, description="Max nodes in the SubGraph")
    fusion: FusionWeights = Field(default_factory=FusionWeights)

    seed_combined_weight: float = Field(default=0.6, ge=0.0, le=1.0)
    seed_importance_weight: float = Field(default=0.4, ge=0.0, le=1.0)
    expansion_discount: float = Field(default=0.3, gt=0.0, le=1.0)
    degree_weight: float = Field(default=0.1, ge=0.0, le=1.0)

    rerank_enabled: bool = True
    relevance_floor: float = Field(default=0.3, ge=-1.0, le=1.0)
    max_expansion_nodes: int = Field(default=50, ge=0)
    keep_unembedded: bool = True

    search_timeout_seconds: float = Field(default=10.0, gt=0.0)
    expansion_timeout_seconds: float = Field(default=10.0, gt=0.0)
    embedding_timeout_seconds: float = Field(default=10.0, gt=0.0)

    intent_strategies_enabled: bool = False

    @model_validator(mode="after")
    def blend_weights_sum_to_one(self) -> "RetrievalSettings":
        total = self.seed_combined_weight + self.seed_importance_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(
                f"seed_combined_weight + seed_importance_weight must be 1.0, got {total:.3f}"
            )
        return self


class PipelineSettings(BaseModel):
    """Query pipeline tunables."""
    max_refinements: int = Field(default=3, ge=0, le=10)
    step_timeout_seconds: float = Field(default=120.0, gt=0.0)
    claim_check_timeout_seconds: float = Field(default=5.0, gt=0.0)
    verification_max_concurrency: int = Field(default=5, ge=1)
    distill_max_concurrency: int = Field(default=3, ge=1)
    distill_max_items: int = Field(default=20, ge=1)
    distill_timeout_seconds: float = Field(default=30.0, gt=0.0)
    distill_on_refinement: bool = False
    generation_timeout_seconds: float = Field(default=60.0, gt=0.0)
    degraded_confidence_cap: float = Field(default=0.2, ge=0.0, le=1.0)


class CodeKGSettings(BaseModel):
    """Root settings object."""
    version: str = "1.0"
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    @field_validator("version")
    @classmethod
    def version_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("version must not be empty")
        return v
