import json
import os
from pathlib import Path

import yaml


def from_json_or_yaml(filepath):
    """
    Load configuration from a JSON or YAML file based on the file extension.

    Args:
    filepath (str): The path to the configuration file.

    Returns:
    dict: The configuration dictionary.

    Raises:
    FileNotFoundError: If the file does not exist.
    ValueError: If the file extension is not supported or the content is not a mapping.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    extension = os.path.splitext(str(filepath))[1].lower()
    with open(filepath, "r", encoding="utf-8") as f:
        if extension == ".json":
            data = json.load(f)
        elif extension in {".yaml", ".yml"}:
            data = yaml.safe_load(f) or {}
        else:
            raise ValueError(f"Unsupported configuration file type: {extension}")

    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {filepath}")
    return data


def ensure_dir(file_path):
    """
    Check if the parent directory of the given file path exists, if not, create it.

    Returns:
    dir_path (str): The directory path.
    """
    dir_path = os.path.dirname(os.path.abspath(str(file_path)))
    os.makedirs(dir_path, exist_ok=True)
    return dir_path


def save_html(output_path, content, include_bom=False):
    """Write snapshot HTML as UTF-8, optionally prefixed with a byte order mark."""
    ensure_dir(output_path)
    encoding = "utf-8-sig" if include_bom else "utf-8"
    with open(output_path, "w", encoding=encoding, newline="") as f:
        f.write(content)
    return Path(output_path)
