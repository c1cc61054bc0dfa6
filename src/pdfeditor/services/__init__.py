"""
pdfeditor - Services Package

Collaborators of the page editor: preview rendering, PDF manipulation,
output reconstruction and saving.
"""

from pdfeditor.services.document_backend import DocumentBackend, PikepdfBackend
from pdfeditor.services.reconstruction import (
    DocumentInfo,
    ReconstructionPipeline,
    ReconstructionResult,
    suggest_filename,
)
from pdfeditor.services.renderer import PageBoxRenderer, PdftoppmRenderer, Renderer
from pdfeditor.services.save_target import (
    CallbackSaveTarget,
    DirectorySaveTarget,
    PathSaveTarget,
    SaveTarget,
)

__all__ = [
    "DocumentBackend",
    "PikepdfBackend",
    "DocumentInfo",
    "ReconstructionPipeline",
    "ReconstructionResult",
    "suggest_filename",
    "Renderer",
    "PdftoppmRenderer",
    "PageBoxRenderer",
    "SaveTarget",
    "DirectorySaveTarget",
    "PathSaveTarget",
    "CallbackSaveTarget",
]
