# cli/logging_setup.py
import logging

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))

    # drop previous handlers to avoid duplicate lines
    root.handlers = []
    root.addHandler(handler)

    # transformers/huggingface_hub are chatty at INFO
    for name in ("transformers", "sentence_transformers", "huggingface_hub", "urllib3"):
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
