"""OpsCadence: recurring cadence to task instance engine."""

import logging

__version__ = "0.1.0"

# Custom TRACE level, registered on import so engine modules can call log.trace()
TRACE = 5
logging.TRACE = TRACE
logging.addLevelName(TRACE, "TRACE")


def _trace(self, msg, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


logging.Logger.trace = _trace
