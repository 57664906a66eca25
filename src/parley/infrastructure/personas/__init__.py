"""Persona text loading."""

from parley.infrastructure.personas.loader import PersonaLibrary, load_persona

__all__ = ["PersonaLibrary", "load_persona"]
