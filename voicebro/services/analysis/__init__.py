"""
Analysis module - turns a transcript into six perspective commentaries.

Factory function for creating analyzer instances based on provider configuration.
"""

from .base import BaseAnalyzer

__all__ = ["BaseAnalyzer", "create_analyzer"]


def create_analyzer(provider: str, **kwargs) -> BaseAnalyzer:
    """
    Factory function to create an analyzer based on provider.

    Args:
        provider: "simulated" for the offline analyzer, or an LLM provider
            name ("claude", "ollama")
        **kwargs: Provider-specific configuration

    Returns:
        BaseAnalyzer implementation instance

    Raises:
        ValueError: If provider is unknown
    """
    if provider == "simulated":
        from .simulated import SimulatedAnalyzer

        return SimulatedAnalyzer(**kwargs)

    from voicebro.services.llm import create_llm

    from .llm_analyzer import LLMAnalyzer

    return LLMAnalyzer(create_llm(provider, **kwargs))
