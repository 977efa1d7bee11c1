"""
errors.py

Exceptions raised by the feature extraction pipeline.
"""


class FatalConfigurationError(RuntimeError):
    """The pipeline is misconfigured and must not keep running.

    Raised for an unrecognised sensor kind, a point schema without a ring
    channel, or a non-dense cloud from a sensor that is required to deliver
    dense clouds.  These are never per-scan data problems; the process
    driving the extractor is expected to stop.
    """
