# Pipeline error taxonomy
# Every error records the stage that raised it so the runner can report it


class SoilModelError(Exception):
    """Base class for errors raised by the modelling pipeline."""
    stage = 'pipeline'

    def __init__(self, message, stage=None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class SchemaError(SoilModelError):
    """A required attribute is missing, renamed or duplicated."""
    stage = 'cleaning'


class DataQualityError(SoilModelError):
    """An attribute or record cannot be repaired by the cleaning policy."""
    stage = 'cleaning'


class InsufficientDataError(SoilModelError):
    """A stratum holds too few records for the requested partitioning."""
    stage = 'splitting'


class FitError(SoilModelError):
    """The underlying estimator failed to fit or received degenerate input."""
    stage = 'fitting'


class MetricError(SoilModelError):
    """A metric is undefined for the given predictions."""
    stage = 'scoring'
