from authflow.models.user import User

__all__ = ["User"]
