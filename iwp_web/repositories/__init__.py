from .output_repository import OutputRepository

__all__ = ["OutputRepository"]
