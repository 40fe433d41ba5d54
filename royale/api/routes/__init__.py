from royale.api.routes import session

__all__ = ["session"]
