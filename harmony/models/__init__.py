# Import all models so Alembic can detect them
from harmony.models.artist_detail import ArtistDetail
from harmony.models.artist_image import ArtistImage
from harmony.models.generation_history import GenerationHistory, GenerationStatus, GenerationType

__all__ = [
    "ArtistDetail",
    "ArtistImage",
    "GenerationHistory",
    "GenerationStatus",
    "GenerationType",
]
