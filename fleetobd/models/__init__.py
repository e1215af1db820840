# Fleet OBD: Database Models
# Import all models here for SQLAlchemy discovery

from fleetobd.models.company import Company                      # noqa
from fleetobd.models.driver import Driver                        # noqa
from fleetobd.models.vehicle import Vehicle                      # noqa
from fleetobd.models.telemetry_reading import TelemetryReading   # noqa
