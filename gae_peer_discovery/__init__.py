"""Dynamic peer discovery for process meshes running on Google App Engine."""

__version__ = "0.1.0"
