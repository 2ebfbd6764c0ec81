# cli/commands.py
from datetime import datetime
from pathlib import Path

import click
import numpy as np

from cli.config_loader import load_config
from cli.logging_setup import setup_logging
from core.backend import load_backend
from core.embedder import Embedder
from core.errors import EmbeddingError
from core.search import run_search
from storage.embedding_store import load_sentences, load_store, save_sentences, save_store

DEFAULT_STORE = "data/embeddings.safetensors"


def get_embedder(cfg: dict, pooling: str | None = None) -> Embedder:
    try:
        tokenizer, encoder = load_backend(
            cfg["model_name"],
            revision=cfg["revision"],
            max_length=cfg["max_length"],
        )
        return Embedder(
            tokenizer,
            encoder,
            pooling=pooling or cfg["pooling"],
            eps=cfg["normalize_eps"],
        )
    except (EmbeddingError, ValueError) as e:
        raise click.ClickException(f"Не удалось загрузить модель: {e}")


@click.group()
def main() -> None:
    """bert-search — sentence embeddings and cosine similarity search."""
    pass


@main.command()
@click.argument("texts", nargs=-1, required=True)
@click.option("--pooling", type=click.Choice(["max", "mean"]), default=None, help="Pooling strategy")
@click.option("--config", default="config.yaml", help="Path to config.yaml")
def embed(texts: tuple[str, ...], pooling: str | None, config: str) -> None:
    """Embed one or more sentences and print a summary of each vector."""
    cfg = load_config(config)
    setup_logging(cfg["log_level"])
    embedder = get_embedder(cfg, pooling)
    try:
        embeddings = embedder.embed(list(texts))
    except EmbeddingError as e:
        raise click.ClickException(f"Ошибка эмбеддинга: {e}")

    for text, vec in zip(texts, embeddings):
        head = ", ".join(f"{v:.4f}" for v in vec[:5])
        click.echo(f"dim={vec.shape[0]} norm={np.linalg.norm(vec):.4f} | [{head}, ...] | {text}")


@main.command()
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--out", default=None, help="Output safetensors file")
@click.option("--key", default=None, help="Tensor key inside the file")
@click.option("--config", default="config.yaml", help="Path to config.yaml")
def build(file_path: str, out: str | None, key: str | None, config: str) -> None:
    """Build an embedding store from a text file, one sentence per line."""
    cfg = load_config(config)
    setup_logging(cfg["log_level"])
    out_path = Path(out or cfg["embeddings_file"] or DEFAULT_STORE)
    tensor_key = key or cfg["embeddings_key"]

    with open(file_path, encoding="utf-8") as f:
        sentences = [line.strip() for line in f if line.strip()]
    if not sentences:
        click.echo("Файл не содержит предложений.")
        return

    embedder = get_embedder(cfg)
    batch_size = max(1, int(cfg["batch_size"]))
    batches = []
    try:
        for start in range(0, len(sentences), batch_size):
            batch = sentences[start:start + batch_size]
            batches.append(embedder.embed(batch))
            click.echo(f"Обработано {start + len(batch)}/{len(sentences)}")
    except EmbeddingError as e:
        raise click.ClickException(f"Ошибка эмбеддинга: {e}")

    embeddings = np.vstack(batches)
    save_store(out_path, tensor_key, embeddings)
    save_sentences(out_path, sentences)
    click.echo(f"\nСохранено {embeddings.shape[0]} векторов (dim={embeddings.shape[1]}) в {out_path}")


@main.command()
@click.argument("query")
@click.option("--top-k", default=None, type=click.IntRange(min=0), help="Number of results")
@click.option("--store", default=None, help="Safetensors file with the embedding store")
@click.option("--key", default=None, help="Tensor key inside the file")
@click.option("--config", default="config.yaml", help="Path to config.yaml")
def search(query: str, top_k: int | None, store: str | None, key: str | None, config: str) -> None:
    """Find the stored sentences most similar to QUERY."""
    cfg = load_config(config)
    setup_logging(cfg["log_level"])
    k = top_k if top_k is not None else cfg["top_k_results"]
    source = store or cfg["embeddings_file"]
    embedder = get_embedder(cfg)

    try:
        emb_store = load_store(source, _store_key(key, cfg), embedder.hidden_size)
    except FileNotFoundError:
        click.echo(f"Хранилище не найдено: {source}. Создайте его: bert-search build <file>")
        return
    except EmbeddingError as e:
        raise click.ClickException(f"Не удалось загрузить хранилище: {e}")

    if emb_store.is_placeholder:
        click.echo("Хранилище не задано. Укажите --store или embeddings_file в config.yaml")
        return

    try:
        results = run_search(query, embedder, emb_store, top_k=k)
    except (EmbeddingError, ValueError) as e:
        raise click.ClickException(f"Ошибка поиска: {e}")

    if not results:
        click.echo("Ничего не найдено.")
        return

    sentences = load_sentences(source) or []
    click.echo(f"\nРезультаты для: \"{query}\"\n" + "-" * 60)
    for rank_no, (index, score) in enumerate(results, 1):
        text = sentences[index] if index < len(sentences) else ""
        click.echo(f"[{rank_no}] score={score:.3f} | #{index} | {text[:200]}")

    try:
        _log_search(cfg["log_file"], query, results[0].score)
    except OSError as e:
        click.echo(f"Предупреждение: не удалось записать лог: {e}", err=True)


@main.command()
@click.option("--store", default=None, help="Safetensors file with the embedding store")
@click.option("--key", default=None, help="Tensor key inside the file")
@click.option("--config", default="config.yaml", help="Path to config.yaml")
def info(store: str | None, key: str | None, config: str) -> None:
    """Show the shape of the embedding store."""
    cfg = load_config(config)
    setup_logging(cfg["log_level"])
    source = store or cfg["embeddings_file"]
    if not source:
        click.echo("Хранилище не задано (placeholder из одной нулевой строки).")
        return
    try:
        # hidden_dim only matters for the placeholder, which is excluded above
        emb_store = load_store(source, _store_key(key, cfg), hidden_dim=0)
    except FileNotFoundError:
        click.echo(f"Хранилище не найдено: {source}")
        return
    except EmbeddingError as e:
        raise click.ClickException(f"Не удалось загрузить хранилище: {e}")

    sentences = load_sentences(source)
    click.echo(f"{source}: {emb_store.corpus_size} векторов, dim={emb_store.hidden_dim}")
    if sentences is not None:
        click.echo(f"Текстов предложений: {len(sentences)}")


def _store_key(key: str | None, cfg: dict) -> str:
    return key or cfg["embeddings_key"]


def _log_search(log_file: str, query: str, top_score: float) -> None:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{datetime.now().isoformat()} | score={top_score:.3f} | {query}\n")
