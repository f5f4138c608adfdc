"""
Listing-stage records consumed by the transfer pipeline.
"""

from maskstream.listing.descriptor import FileDescriptor, relative_to_source

__all__ = [
    "FileDescriptor",
    "relative_to_source",
]
