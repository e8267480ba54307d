from src.studio.features.generation.handlers import router

__all__ = ["router"]
