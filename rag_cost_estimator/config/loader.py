"""
Configuration management and loading.

Loads model price tables and usage scenarios from YAML files.
"""

import math
from pathlib import Path
from typing import Any, Dict

import yaml

from rag_cost_estimator.core.calculation import UsageConfig
from rag_cost_estimator.core.pricing import ModelPricing, PricingTable


_PRICING_KEYS = {'name', 'description', 'input_price_per_1k', 'output_price_per_1k'}
_USAGE_KEYS = {
    'selected_model',
    'daily_users',
    'conversations_per_user',
    'messages_per_conversation',
    'words_per_chunk',
    'chunks_per_query',
    'user_query_words',
    'response_words',
}


def _load_yaml(path: str, kind: str) -> Dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")
    
    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")
    
    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration file must contain a mapping")
    return raw_config


def load_pricing_table(path: str) -> PricingTable:
    """Load and validate a model price table from a YAML file.
    
    Expected layout::
    
        models:
          gpt-4o:
            name: GPT-4o
            description: ...
            input_price_per_1k: 0.0025
            output_price_per_1k: 0.01
    
    Args:
        path: Path to YAML pricing file
        
    Returns:
        Validated PricingTable
        
    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If the price table is invalid
    """
    raw_config = _load_yaml(path, "Pricing")
    
    unknown_keys = set(raw_config.keys()) - {'models'}
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")
    
    models_data = raw_config['models']
    if not isinstance(models_data, dict) or not models_data:
        raise ValueError("'models' must be a non-empty dictionary")
    
    prices = {}
    for model_id, model_data in models_data.items():
        if not isinstance(model_data, dict):
            raise ValueError(f"Model '{model_id}' must be a dictionary")
        prices[str(model_id)] = _parse_model_pricing(model_data, f"models.{model_id}")
    
    return PricingTable(prices)


def _parse_model_pricing(data: Dict, path: str) -> ModelPricing:
    """Parse and validate one price table entry.
    
    Args:
        data: Model pricing data
        path: Path for error messages
        
    Returns:
        Validated ModelPricing
        
    Raises:
        ValueError: If the entry is invalid
    """
    unknown_keys = set(data.keys()) - _PRICING_KEYS
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
    
    for key in ('input_price_per_1k', 'output_price_per_1k'):
        if key not in data:
            raise ValueError(f"Missing required '{key}' in {path}")
        price = data[key]
        if (isinstance(price, bool) or not isinstance(price, (int, float)) or
                not math.isfinite(price) or price < 0):
            raise ValueError(f"'{key}' in {path} must be a finite number >= 0")
    
    name = data.get('name', path.split('.', 1)[-1])
    description = data.get('description', '')
    if not isinstance(name, str) or not isinstance(description, str):
        raise ValueError(f"'name' and 'description' in {path} must be strings")
    
    return ModelPricing(
        name=name,
        description=description,
        input_price_per_1k=float(data['input_price_per_1k']),
        output_price_per_1k=float(data['output_price_per_1k'])
    )


def load_usage_config(path: str) -> UsageConfig:
    """Load a usage scenario from a YAML file.
    
    Numeric values are taken as-is: the calculator decides what zero or
    negative usage means. Fields left out keep the reference defaults.
    
    Args:
        path: Path to YAML usage file with a top-level 'usage' mapping
        
    Returns:
        UsageConfig built from the file
        
    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If keys are unknown or values have the wrong type
    """
    raw_config = _load_yaml(path, "Usage config")
    
    unknown_keys = set(raw_config.keys()) - {'usage'}
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")
    
    usage_data = raw_config['usage']
    if not isinstance(usage_data, dict):
        raise ValueError("'usage' must be a dictionary")
    
    unknown_usage_keys = set(usage_data.keys()) - _USAGE_KEYS
    if unknown_usage_keys:
        raise ValueError(f"Unknown usage keys: {unknown_usage_keys}")
    
    for key, value in usage_data.items():
        if key == 'selected_model':
            if not isinstance(value, str):
                raise ValueError("'selected_model' in usage must be a string")
        elif isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"'{key}' in usage must be a number")
    
    defaults = UsageConfig.from_dict({})
    return UsageConfig(**{
        key: usage_data.get(key, getattr(defaults, key))
        for key in _USAGE_KEYS
    })
