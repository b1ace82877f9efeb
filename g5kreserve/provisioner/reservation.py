from g5kreserve.errors import ConfigurationError
from g5kreserve.utils import get_logger, walltime_to_seconds, format_walltime, date_to_epoch


logger = get_logger()

JOB_TYPES = ('normal', 'deploy')
# OAR resource types of KaVLAN, see https://www.grid5000.fr/w/KaVLAN
VLAN_TYPES = {'isolated': 'kavlan', 'routed': 'kavlan', 'local': 'kavlan-local', 'global': 'kavlan-global'}
# named subnet widths, in the order they are looked up
PREDEFINED_SLASHES = (('slash_22', 22), ('slash_18', 18))


class ReservationRequest(object):
    """The description of a reservation on one site

    Parameters
    ----------
    nodes: int
        the number of nodes, mutually exclusive with `hosts`. Defaults to 1 when `hosts` is not given
    hosts: list of str
        the exact hosts to reserve
    cluster: str
        restrict the reservation to one cluster
    walltime: int, timedelta or str
        the duration of the reservation (H:MM:SS)
    at: int, datetime or str
        the earliest start date of the reservation
    job_type: str
        'normal' to get the nodes with the default OS, 'deploy' to reinstall them
    vlan: str
        'isolated' or 'routed' to get a routed KaVLAN with the nodes, 'local' for a VLAN that
        is not routed, 'global' for a VLAN shared between sites
    slash: int
        the number of bits of a subnet, takes priority over `slash_22` and `slash_18`
    slash_22, slash_18: int
        the number of /22 or /18 subnets
    switches: int
        the number of switches the nodes are spread on
    command: str
        the command of the job, defaults to sleeping for the walltime
    name: str
        the name of the job
    is_async: bool
        do not wait for the job to be running after the submission
    ignore_dead: bool
        remove the dead hosts from `hosts` before submitting
    env: str
        the environment to deploy on the nodes once the job is running
    """

    OPTIONS = ('nodes', 'hosts', 'cluster', 'walltime', 'at', 'job_type', 'vlan', 'slash',
               'slash_22', 'slash_18', 'switches', 'command', 'name', 'is_async', 'ignore_dead', 'env')

    def __init__(self, nodes=None, hosts=None, cluster=None, walltime='01:00:00', at=None,
                 job_type='normal', vlan=None, slash=None, slash_22=None, slash_18=None,
                 switches=None, command=None, name='g5kreserve', is_async=False,
                 ignore_dead=False, env=None):
        self.nodes = nodes
        self.hosts = list(hosts) if isinstance(hosts, (list, tuple)) else hosts
        self.cluster = cluster
        self.walltime = walltime
        self.at = at
        self.job_type = job_type
        self.vlan = vlan
        self.slash = slash
        self.slash_22 = slash_22
        self.slash_18 = slash_18
        self.switches = switches
        self.command = command
        self.name = name
        self.is_async = is_async
        self.ignore_dead = ignore_dead
        self.env = env

    @classmethod
    def from_config(cls, configs):
        """Create a request from the options of a configuration file

        Parameters
        ----------
        configs: dict
            the reservation options, keys that are not reservation options are rejected
        """
        if not isinstance(configs, dict):
            raise ConfigurationError('Reservation options have to be a dictionary.')
        unknown = sorted(set(configs) - set(cls.OPTIONS))
        if unknown:
            raise ConfigurationError('Unknown reservation options: %s' % ', '.join(unknown), option=unknown[0])
        return cls(**configs)

    def __eq__(self, other):
        return isinstance(other, ReservationRequest) and vars(self) == vars(other)

    def __repr__(self):
        options = ['%s=%r' % (key, value) for key, value in vars(self).items() if value is not None]
        return 'ReservationRequest(%s)' % ', '.join(options)


class CompiledResourceSpec(object):
    """The submission of a job: the OAR resources string and its companions"""

    def __init__(self, resources, types, name, command, properties=None, reservation=None):
        self.resources = resources
        self.types = types
        self.name = name
        self.command = command
        self.properties = properties
        self.reservation = reservation

    def to_payload(self):
        payload = {'resources': self.resources,
                   'name': self.name,
                   'command': self.command,
                   'types': list(self.types)}
        if self.properties is not None:
            payload['properties'] = self.properties
        if self.reservation is not None:
            payload['reservation'] = self.reservation
        return payload

    def __eq__(self, other):
        return isinstance(other, CompiledResourceSpec) and vars(self) == vars(other)

    def __repr__(self):
        return 'CompiledResourceSpec(%r, properties=%r)' % (self.resources, self.properties)


def _positive_int(value, option):
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigurationError('%s must be a positive integer, got %r' % (option, value), option=option)
    return value


def handle_slash(request):
    """Return the subnet clause of a request, or None

    An explicit number of bits wins over the predefined widths.
    """
    if request.slash is not None:
        bits = _positive_int(request.slash, 'slash')
        named = [label for label, _ in PREDEFINED_SLASHES if getattr(request, label) is not None]
        if named:
            logger.warning('Both slash=%s and %s are given, using slash=%s' % (bits, ', '.join(named), bits))
        return 'slash_%s=1' % bits
    for label, bits in PREDEFINED_SLASHES:
        count = getattr(request, label)
        if count is not None:
            return 'slash_%s=%s' % (bits, _positive_int(count, label))
    return None


def handle_vlan(vlan):
    if vlan is None or vlan is False:
        return None
    if vlan is True:
        vlan = 'isolated'
    if vlan not in VLAN_TYPES:
        raise ConfigurationError('Option for vlan not recognized: %r, use one of %s'
                                 % (vlan, ', '.join(sorted(VLAN_TYPES))), option='vlan')
    return VLAN_TYPES[vlan]


def compile_request(request, dead_hosts=None):
    """Translate a reservation request into the OAR resources string

    Parameters
    ----------
    request: ReservationRequest
        the reservation to compile
    dead_hosts: iterable of str
        hosts to drop from `request.hosts` when `request.ignore_dead` is set

    Returns
    -------
    CompiledResourceSpec
        the resources, properties and types of the job to submit
    """
    if request.nodes is not None and request.hosts is not None:
        raise ConfigurationError('nodes and hosts cannot be given together', option='nodes')
    if request.hosts is not None and (not isinstance(request.hosts, (list, tuple))
                                      or not all(isinstance(host, str) for host in request.hosts)):
        raise ConfigurationError('hosts must be a list of host names, got %r' % (request.hosts,), option='hosts')
    if request.job_type not in JOB_TYPES:
        raise ConfigurationError("Type must be either 'deploy' or 'normal', got %r" % (request.job_type,),
                                 option='job_type')
    kavlan = handle_vlan(request.vlan)
    slash = handle_slash(request)
    if kavlan is not None and slash is not None:
        raise ConfigurationError('vlan and slash options cannot be given together', option='vlan')
    try:
        secs = walltime_to_seconds(request.walltime)
    except ValueError as e:
        raise ConfigurationError(str(e), option='walltime')

    properties = None
    if request.hosts is not None:
        hosts = request.hosts
        if request.ignore_dead and dead_hosts:
            dead_hosts = set(dead_hosts)
            hosts = [host for host in hosts if host not in dead_hosts]
            removed_hosts = [host for host in request.hosts if host in dead_hosts]
            if removed_hosts:
                logger.info('Ignored hosts: %s' % ', '.join(removed_hosts))
        properties = 'host in (%s)' % ','.join(sorted("'%s'" % host for host in hosts))
        nodes = len(hosts)
    else:
        nodes = _positive_int(1 if request.nodes is None else request.nodes, 'nodes')

    resources = '/nodes=%s,walltime=%s' % (nodes, format_walltime(secs))
    if request.switches is not None:
        resources = '/switch=%s' % _positive_int(request.switches, 'switches') + resources
    if request.cluster is not None:
        resources = "{cluster='%s'}" % request.cluster + resources
    if kavlan is not None:
        resources = "{type='%s'}/vlan=1+" % kavlan + resources
    if slash is not None:
        resources = '%s+' % slash + resources

    reservation = None
    if request.at is not None:
        try:
            reservation = date_to_epoch(request.at)
        except ValueError as e:
            raise ConfigurationError(str(e), option='at')

    return CompiledResourceSpec(resources=resources,
                                types=['deploy'] if request.job_type == 'deploy' else ['allow_classic_ssh'],
                                name=request.name,
                                command=request.command if request.command is not None else 'sleep %s' % secs,
                                properties=properties,
                                reservation=reservation)
