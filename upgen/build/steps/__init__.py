"""工作流步骤"""

from .build_step import BuildStep
from .staging_step import StagingStep
from .change_detection_step import ChangeDetectionStep
from .file_collection_step import FileCollectionStep, TreeCollectionStep
from .archive_step import FlatArchiveStep, ContainerArchiveStep
from .metadata_step import MetadataStep

__all__ = [
    "BuildStep",
    "StagingStep",
    "ChangeDetectionStep",
    "FileCollectionStep",
    "TreeCollectionStep",
    "FlatArchiveStep",
    "ContainerArchiveStep",
    "MetadataStep",
]
