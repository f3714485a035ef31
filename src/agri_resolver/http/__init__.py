from agri_resolver.http.client import HttpClient

__all__ = ["HttpClient"]
