import os
import time

import tenacity

from g5kreserve.api import g5k_rest, DEFAULT_API_URI, Job, Deployment, Site, Cluster, Switch, uids
from g5kreserve.errors import (ConfigurationError, JobFailedError, TimedOutError,
                               DeploymentFailedError, NotFoundError)
from g5kreserve.experimenter import parse_job_ids, release
from g5kreserve.provisioner.provisioning import cloud_provisioning
from g5kreserve.provisioner.reservation import ReservationRequest, compile_request
from g5kreserve.utils import get_logger, format_date


logger = get_logger()

# a job in one of these states will never run
FAILED_JOB_STATES = ('finishing', 'error', 'terminated')
FAILED_DEPLOY_STATUSES = ('error', 'canceled')


class g5k_api_provisioner(cloud_provisioning):
    """Reserve and deploy nodes on Grid'5000 through its REST API

    The provisioner either reserves new nodes following the `reservation` section of
    the config file, or reuses existing jobs given as `site1:job_id1,site2:job_id2,...`.
    """

    def __init__(self, **kwargs):
        self.config_file_path = kwargs.get('config_file_path')
        self.configs = kwargs.get('configs')
        self.job_ids = kwargs.get('job_ids')
        self.keep_alive = kwargs.get('keep_alive', False)
        self.poll_interval = kwargs.get('poll_interval', 5)
        self.wait_timeout = kwargs.get('wait_timeout', 36000)
        self.deploy_timeout = kwargs.get('deploy_timeout', 3600)
        self.sleep = kwargs.get('sleep', time.sleep)
        self.clock = kwargs.get('clock', time.monotonic)

        self.jobs = list()
        self.hosts = list()
        self.resources = dict()

        if self.configs is not None or self.config_file_path is not None:
            super(g5k_api_provisioner, self).__init__(config_file_path=self.config_file_path,
                                                      configs=self.configs)
        elif self.job_ids is None:
            raise ConfigurationError('Please provide at least a provisioning config file or job IDs.')
        else:
            self.configs = dict()

        self.rest = kwargs.get('rest') or g5k_rest(
            uri=self.configs.get('api_uri', DEFAULT_API_URI),
            user=self.configs.get('user', os.environ.get('G5K_USER')),
            password=self.configs.get('password', os.environ.get('G5K_PASSWORD')))

        if self.job_ids is not None:
            logger.info('Checking the given job IDs')
            for job_id, site in parse_job_ids(self.job_ids):
                try:
                    self.jobs.append(self.get_job(site, job_id))
                except NotFoundError:
                    raise ConfigurationError('Job id: %s in %s is not a valid Grid5000 job id' % (job_id, site),
                                             option='job_ids')

    @property
    def g5k_user(self):
        return self.rest.user or os.environ.get('G5K_USER') or os.environ.get('USER')

    # Information about the platform

    def sites(self):
        return [Site(item) for item in self.rest.get_json('sites')['items']]

    def site_uids(self):
        return uids(self.sites())

    def clusters(self, site):
        return [Cluster(item) for item in self.rest.get_json('sites/%s/clusters' % site)['items']]

    def cluster_uids(self, site):
        return uids(self.clusters(site))

    def site_status(self, site):
        return self.rest.get_json('sites/%s/status' % site)

    def get_nodes_status(self, site):
        """Return the soft state (e.g. free, busy) of every node of a site"""
        nodes = dict()
        for name, status in (self.site_status(site).get('nodes') or dict()).items():
            nodes[name] = status.get('soft')
        return nodes

    def get_dead_hosts(self, site):
        """Return the hosts of a site that cannot be reserved, with both full and short names"""
        dead_hosts = set()
        for name, status in (self.site_status(site).get('nodes') or dict()).items():
            if status.get('hard') in ('dead', 'absent', 'suspected') or status.get('soft') == 'unknown':
                dead_hosts.add(name)
                dead_hosts.add(name.split('.')[0])
        return dead_hosts

    def get_jobs(self, site, uid=None, state='running'):
        params = {'state': state}
        if uid is not None:
            params['user'] = uid
        items = self.rest.get_json('sites/%s/jobs' % site, params=params)['items']
        return [Job(item, site=site) for item in items]

    def get_job(self, site, job_id):
        return Job(self.rest.get_json('sites/%s/jobs/%s' % (site, job_id)), site=site)

    def my_jobs(self, site, state='running'):
        return self.get_jobs(site, self.g5k_user, state)

    def get_deployments(self, site):
        items = self.rest.get_json('sites/%s/deployments' % site)['items']
        return [Deployment(item, site=site) for item in items]

    def get_switches(self, site):
        """Return the switches of a site that have nodes connected to them"""
        items = self.rest.get_json('sites/%s/network_equipments' % site)['items']
        switches = [Switch.from_equipment(item, site) for item in items]
        return [switch for switch in switches if switch is not None]

    def get_switch(self, site, name):
        for switch in self.get_switches(site):
            if switch.uid == name:
                return switch
        raise NotFoundError("Unknown switch '%s' in %s" % (name, site))

    # Job lifecycle

    def _poll(self, fetch, is_done, timeout, interval, on_timeout):
        """Call `fetch` every `interval` seconds until `is_done` accepts its result.
        Exceptions raised by `fetch` stop the polling at once. No poll happens after the deadline."""
        deadline = self.clock() + timeout

        def stop(state):
            now = self.clock()
            return now >= deadline or now + interval > deadline

        retrying = tenacity.Retrying(
            stop=stop,
            wait=tenacity.wait_fixed(interval),
            retry=tenacity.retry_if_result(lambda result: not is_done(result)),
            retry_error_callback=lambda state: on_timeout(state.outcome.result()),
            sleep=self.sleep)
        return retrying(fetch)

    def submit(self, site, spec):
        """Submit a job, this is not idempotent: every call creates a new job

        Parameters
        ----------
        site: str
            the name of the site
        spec: CompiledResourceSpec
            the compiled reservation

        Returns
        -------
        Job
            the submitted job in its initial state
        """
        logger.info('Reserving resources: %s (types: %s) (in %s)' % (spec.resources, ', '.join(spec.types), site))
        if spec.reservation is not None:
            logger.info('Starting this reservation at %s' % format_date(spec.reservation))
        try:
            submitted = Job(self.rest.post_json('sites/%s/jobs' % site, spec.to_payload()), site=site)
        except Exception:
            logger.error('Fail posting the job to the API')
            raise
        return submitted.refresh(self.rest)

    def wait_until_running(self, job, timeout=None, interval=None):
        """Wait for the job to be in a running state

        Parameters
        ----------
        job: Job
            the job to wait for
        timeout: int
            the number of seconds before raising a TimedOutError, the job is not released
        interval: int
            the number of seconds between two polls

        Returns
        -------
        Job
            the job as reported by the API once it is running
        """
        timeout = self.wait_timeout if timeout is None else timeout
        interval = self.poll_interval if interval is None else interval
        logger.info('Waiting for reservation %s' % job.uid)

        def fetch():
            current = job.refresh(self.rest)
            if current.state in FAILED_JOB_STATES:
                raise JobFailedError('Job is %s' % current.state, job_uid=current.uid, state=current.state)
            if current.scheduled_at is not None and current.state != 'running':
                secs = max(int(current.scheduled_at - time.time()), 0)
                logger.info('Reservation %s should be available at %s (%s s)'
                            % (current.uid, format_date(current.scheduled_at), secs))
            return current

        def on_timeout(current):
            raise TimedOutError('Job is not running after %s s' % timeout, job_uid=current.uid, state=current.state)

        running = self._poll(fetch, lambda current: current.state == 'running', timeout, interval, on_timeout)
        logger.info('Reservation %s ready' % running.uid)
        return running

    def deploy(self, job, image, nodes=None, timeout=None, keys=None):
        """Deploy an environment on the nodes of a running job and wait for the result

        Parameters
        ----------
        job: Job
            a running job
        image: str
            the name (or the url of the description) of the environment to deploy
        nodes: list of str
            the nodes to deploy, all the assigned nodes of the job by default
        keys: str
            the public key (or its url) to install on the nodes

        Returns
        -------
        dict
            key: str, the name of the node
            value: str, 'OK'
        """
        if nodes is None:
            nodes = job.assigned_nodes
        if not isinstance(nodes, list):
            raise ConfigurationError('Unrecognized nodes format, use a list', option='nodes')
        if not nodes:
            raise ConfigurationError('There is no node to deploy in job %s' % job.uid, option='nodes')

        payload = {'nodes': nodes, 'environment': image}
        if keys is not None:
            payload['key'] = keys
        logger.info('Deploying %s on %s hosts of job %s' % (image, len(nodes), job.uid))
        deployment = Deployment(self.rest.post_json('sites/%s/deployments' % job.site, payload), site=job.site)
        deployment = self.wait_for_deploy(deployment, job_uid=job.uid, timeout=timeout)

        outcome = deployment.node_states()
        failures = {node: state for node, state in outcome.items() if state != 'OK'}
        if deployment.status in FAILED_DEPLOY_STATUSES or failures:
            logger.error('Failed %s hosts: %s' % (len(failures), ', '.join(sorted(failures))))
            raise DeploymentFailedError('Deployment %s ended with status %s' % (deployment.uid, deployment.status),
                                        job_uid=job.uid, state=deployment.status, failures=failures)
        logger.info('Deployed %s hosts successfully' % len(outcome))
        return outcome

    def wait_for_deploy(self, deployment, job_uid=None, timeout=None, interval=None):
        """Wait for a deployment to leave the processing status and return it"""
        timeout = self.deploy_timeout if timeout is None else timeout
        interval = self.poll_interval if interval is None else interval

        def on_timeout(current):
            raise TimedOutError('Deployment %s is not finished after %s s' % (current.uid, timeout),
                                job_uid=job_uid, state=current.status)

        return self._poll(lambda: deployment.refresh(self.rest),
                          lambda current: current.status != 'processing',
                          timeout, interval, on_timeout)

    def reserve(self, request, site):
        """Submit a reservation and, unless it is asynchronous, wait for it and deploy it

        Parameters
        ----------
        request: ReservationRequest
        site: str
            the name of the site

        Returns
        -------
        Job
        """
        dead_hosts = None
        if request.ignore_dead and request.hosts is not None:
            dead_hosts = self.get_dead_hosts(site)
        spec = compile_request(request, dead_hosts=dead_hosts)
        job = self.submit(site, spec)
        if request.is_async:
            return job
        job = self.wait_until_running(job)
        if request.env is not None:
            self.deploy(job, request.env)
        return job

    # Provisioning workflow driven by the config file

    def _get_request(self):
        options = self.configs.get('reservation')
        if options is None:
            raise ConfigurationError('Please provide a reservation section in the config file.',
                                     option='reservation')
        return ReservationRequest.from_config(options)

    def make_reservation(self):
        """Submit the job described in the config file, unless jobs were given"""
        if self.jobs:
            return
        site = self.configs.get('site')
        if site is None:
            raise ConfigurationError('Please provide the site in the config file.', option='site')
        request = self._get_request()
        request.is_async = True
        self.jobs.append(self.reserve(request, site))

        message = 'Reserved nodes successfully!!! \nJOB ID:'
        for job in self.jobs:
            message += '\n%s: %s' % (job.site, job.uid)
        logger.info(message)

    def get_resources(self):
        """Wait for the jobs to be running and retrieve their hosts"""
        self.jobs = [self.wait_until_running(job) for job in self.jobs]
        self.hosts = list()
        for job in self.jobs:
            self.resources.setdefault(job.site, {'hosts': list(), 'jobs': list()})
            self.resources[job.site]['hosts'] += job.assigned_nodes
            self.resources[job.site]['jobs'].append(job.uid)
            self.hosts += job.assigned_nodes
        logger.info('Retrieved %s hosts' % len(self.hosts))

    def setup_hosts(self):
        """Deploy the environment of the config file on the deploy jobs"""
        env = (self.configs.get('reservation') or dict()).get('env')
        if env is None:
            return
        for job in self.jobs:
            if 'deploy' not in job.types:
                logger.warning('Job %s is not a deploy job, skipping the deployment' % job.uid)
                continue
            self.deploy(job, env)

    def provisioning(self):
        self.make_reservation()
        self.get_resources()
        self.setup_hosts()

    def release(self):
        for job in self.jobs:
            release(self.rest, job)
        logger.info('Reservation deleted')
