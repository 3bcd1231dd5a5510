from .llm import ChatModelUpstream, Upstream, get_upstream

__all__ = ["ChatModelUpstream", "Upstream", "get_upstream"]
