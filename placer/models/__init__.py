"""Import models so they register with the metadata."""

from placer.models.user import User  # noqa: F401
from placer.models.place import Place, PlaceLike, PlacePhoto, PlaceTag  # noqa: F401
from placer.models.comment import Comment  # noqa: F401
