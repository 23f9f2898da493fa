"""Client side of the Santa tour sleigh tracker: the driver's broadcaster and the viewer's proximity alert."""

__version__ = "1.0.0"
