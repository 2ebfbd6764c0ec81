# cli/config_loader.py
from pathlib import Path
import yaml

_DEFAULTS = {
    "model_name": "sentence-transformers/all-MiniLM-L6-v2",
    "revision": "main",
    "max_length": 128,
    "pooling": "max",
    "normalize_eps": None,
    "embeddings_file": "",
    "embeddings_key": "embeddings",
    "top_k_results": 5,
    "batch_size": 32,
    "log_level": "INFO",
    "log_file": "logs/search.log",
}


def load_config(config_path: str | Path = "config.yaml") -> dict:
    cfg = dict(_DEFAULTS)
    path = Path(config_path)
    if path.exists():
        with open(path, encoding="utf-8") as f:
            user_cfg = yaml.safe_load(f) or {}
        cfg.update(user_cfg)
    return cfg
