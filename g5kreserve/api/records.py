"""Typed records built from the JSON documents returned by the Grid'5000 API

See https://api.grid5000.fr/doc/3.0/reference/grid5000-media-types.html
"""


def find_link(links, rel):
    for link in links or list():
        if link.get('rel') == rel:
            return link.get('href')
    return None


class Record(object):
    """Base of all records: keeps the raw document and resolves its links"""

    def __init__(self, raw):
        self.raw = raw or dict()
        self.uid = self.raw.get('uid')
        self.links = self.raw.get('links') or list()

    def rel(self, name):
        href = find_link(self.links, name)
        if href is None:
            raise KeyError("No link '%s' in record %s" % (name, self.uid))
        return href

    @property
    def rel_self(self):
        return self.rel('self')

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.uid)


class Deployment(Record):
    def __init__(self, raw, site=None):
        super(Deployment, self).__init__(raw)
        self.site = self.raw.get('site_uid', site)
        self.status = self.raw.get('status')
        self.nodes = self.raw.get('nodes') or list()
        self.result = self.raw.get('result') or dict()

    def node_states(self):
        """Return the per-node result as node -> 'OK' or 'error'"""
        outcome = dict()
        for node in self.nodes:
            outcome[node] = 'error'
        for node, result in self.result.items():
            state = result.get('state') if isinstance(result, dict) else result
            outcome[node] = 'OK' if state == 'OK' else 'error'
        return outcome

    def refresh(self, rest):
        return Deployment(rest.get_json(self.rel_self), site=self.site)


class Job(Record):
    """An OAR job as reported by the API. Never mutated: use refresh() to get a fresh copy"""

    def __init__(self, raw, site=None):
        super(Job, self).__init__(raw)
        self.site = self.raw.get('site_uid', site)
        self.state = self.raw.get('state')
        self.name = self.raw.get('name')
        self.types = self.raw.get('types') or list()
        self.scheduled_at = self.raw.get('scheduled_at')
        self.assigned_nodes = self.raw.get('assigned_nodes') or list()
        self.deploys = [Deployment(each, site=self.site) for each in self.raw.get('deploy') or list()]

    def refresh(self, rest):
        return Job(rest.get_json(self.rel_self), site=self.site)


class Site(Record):
    def __init__(self, raw):
        super(Site, self).__init__(raw)
        self.name = self.raw.get('name')
        self.description = self.raw.get('description')


class Cluster(Record):
    def __init__(self, raw):
        super(Cluster, self).__init__(raw)
        self.model = self.raw.get('model')
        self.queues = self.raw.get('queues') or list()


class Switch(Record):
    def __init__(self, raw, nodes):
        super(Switch, self).__init__(raw)
        self.nodes = nodes

    @classmethod
    def from_equipment(cls, raw, site):
        """Build a switch from a network equipment, or return None when no node is plugged in"""
        if raw.get('kind') != 'switch':
            return None
        for linecard in raw.get('linecards') or list():
            if linecard.get('kind') == 'node':
                ports = [port for port in linecard.get('ports') or list() if port]
                nodes = ['%s.%s.grid5000.fr' % (port['uid'], site) for port in ports if 'uid' in port]
                return cls(raw, nodes)
        # InfiniBand switches for example
        return None


def uids(records):
    return [record.uid for record in records]
