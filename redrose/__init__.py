"""ABC music notation: a symbol model, a builder, note event generation and editing helpers."""

__version__ = "0.1.0"
__all__ = ["builder", "editing", "events", "highlighting", "model", "theory"]