from community_connect.models.user import User

__all__ = ["User"]
