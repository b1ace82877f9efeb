from .rest import g5k_rest, API_VERSION, DEFAULT_API_URI
from .records import Job, Deployment, Site, Cluster, Switch, uids
