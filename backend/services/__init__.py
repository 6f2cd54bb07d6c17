# Services are imported directly where needed, e.g.:
# from services.pipeline import get_generation_pipeline
# from services.gallery_store import get_gallery_store

__all__ = []
