from .reservation import ReservationRequest, CompiledResourceSpec, compile_request
from .provisioning import cloud_provisioning
from .g5k_api_provisioner import g5k_api_provisioner
