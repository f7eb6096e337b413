"""Structure data contract: the immutable structure and its builder."""

from mmtfcodec.data.adapter import AdapterToStructureData, StructureAdapterInterface
from mmtfcodec.data.structure import (
    BioAssembly,
    Entity,
    Group,
    GroupSite,
    StructureData,
    Transform,
)
from mmtfcodec.data.transfer import pass_data_to_adapter

__all__ = [
    "AdapterToStructureData",
    "StructureAdapterInterface",
    "BioAssembly",
    "Entity",
    "Group",
    "GroupSite",
    "StructureData",
    "Transform",
    "pass_data_to_adapter",
]
