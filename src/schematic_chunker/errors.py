"""
Error Taxonomy

FormatError is fatal to the current conversion: the input is malformed,
truncated or not a recognized schematic. RegionSkipWarning is the only
non-fatal condition, issued through the warnings module when a single
region of a region-based file has to be dropped.
"""


class FormatError(ValueError):
    """Malformed or unrecognized schematic data."""


class VarintOverflowError(FormatError):
    """A variable-length integer ran past its maximum byte count."""


class MissingPaletteEntryError(FormatError):
    """A decoded palette index has no block name."""

    def __init__(self, index: int):
        super().__init__(f"Missing palette index {index}.")
        self.index = index


class RegionSkipWarning(UserWarning):
    """A malformed region was skipped; the remaining regions still convert."""
