"""
Pricing tables and rate lookup.

Prices are static configuration data: no dynamic fetching. Lookups for
unknown models resolve to no pricing, which callers treat as zero cost.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    name: str
    description: str
    input_price_per_1k: float  # Cost per 1K input tokens
    output_price_per_1k: float  # Cost per 1K output tokens


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table keyed by model identifier."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> Optional[ModelPricing]:
        """Get pricing for a specific model.
        
        Args:
            model: Model identifier
            
        Returns:
            ModelPricing for the model, or None if the model is not listed
        """
        return self.prices.get(model)

    def input_price(self, model: str) -> float:
        """Input price per 1K tokens, 0 for unknown models."""
        pricing = self.get_pricing(model)
        return pricing.input_price_per_1k if pricing is not None else 0.0

    def output_price(self, model: str) -> float:
        """Output price per 1K tokens, 0 for unknown models."""
        pricing = self.get_pricing(model)
        return pricing.output_price_per_1k if pricing is not None else 0.0

    def models(self) -> List[str]:
        return list(self.prices)


PRICING_TABLE = PricingTable({
    "gpt-4o": ModelPricing(
        name="GPT-4o",
        description="Latest model with vision capabilities, 128K context (Oct 2023)",
        input_price_per_1k=0.0025,
        output_price_per_1k=0.01
    )
})
