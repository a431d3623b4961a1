"""Image thresholding and filtering, colour barcode decoding and gesture classification."""

__version__ = "0.1.0"