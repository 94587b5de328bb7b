# ============================================================================
# src/lab_reconciliation/config/assisted_config.py
# ============================================================================
"""
Assisted Matching Configuration (Local Ollama Inference)
- Enable flag
- Alias learning
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class AssistedMatchingSettings(BaseSettings):
    ASSISTED_MATCHING_ENABLED: bool = Field(
        default=True,
        description="Consult the assisted matcher when local matching finds nothing"
    )
    LEARN_ASSISTED_ALIASES: bool = Field(
        default=True,
        description="Persist accepted assisted matches as new aliases"
    )

assisted_settings = AssistedMatchingSettings()
