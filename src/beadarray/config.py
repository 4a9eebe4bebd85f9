"""
Decoder configuration.

Options can be built directly or loaded from a YAML file:

    decode:
      verify_cluster_counts: true
      string_encoding: utf-8
"""

import codecs
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml

from beadarray.core.result import Result, Ok, Err

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodeOptions:
    """
    Options shared by the file decoders.

    Attributes:
        verify_cluster_counts: Compare the trailing AA/AB/BB count block of
            an EGT file with the per-record counts and fail on mismatch
        string_encoding: Text encoding of length-prefixed strings
    """
    verify_cluster_counts: bool = True
    string_encoding: str = "utf-8"


DEFAULT_OPTIONS = DecodeOptions()


def options_from_dict(data: Dict[str, Any]) -> Result[DecodeOptions, str]:
    """Build DecodeOptions from a mapping, rejecting unknown keys."""
    known = {f.name for f in fields(DecodeOptions)}
    unknown = set(data) - known
    if unknown:
        return Err(f"Unknown decode options: {', '.join(sorted(unknown))}")

    if "verify_cluster_counts" in data and not isinstance(data["verify_cluster_counts"], bool):
        return Err("verify_cluster_counts must be true or false")

    encoding = data.get("string_encoding", DEFAULT_OPTIONS.string_encoding)
    try:
        codecs.lookup(encoding)
    except (LookupError, TypeError):
        return Err(f"Unknown string encoding: {encoding}")

    return Ok(DecodeOptions(**data))


def load_options(config_path: Path) -> Result[DecodeOptions, str]:
    """
    Load decoder options from the `decode` section of a YAML file.

    Args:
        config_path: Path to YAML config

    Returns:
        Result containing DecodeOptions (defaults for a missing section)
    """
    try:
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        return Err(f"Failed to load config: {e}")

    if not isinstance(config, dict):
        return Err(f"Config must be a mapping: {config_path}")

    section = config.get("decode") or {}
    if not isinstance(section, dict):
        return Err("'decode' section must be a mapping")

    logger.debug(f"Loaded decode options from {config_path}: {section}")
    return options_from_dict(section)
