"""Tower geometry, cell-ID segmentation, SiPM counting and event tools for a dual-readout fibre calorimeter."""

__version__ = "0.1.0"