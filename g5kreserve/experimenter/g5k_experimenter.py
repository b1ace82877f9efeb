import os
import time

from g5kreserve.api import Job
from g5kreserve.errors import RequestError, TimedOutError
from g5kreserve.utils import get_logger


logger = get_logger()


def is_already_killed(error):
    return isinstance(error, RequestError) and 'already killed' in error.body


def release(rest, job):
    """Release a job, a job which is already killed counts as released

    Parameters
    ----------
    rest: g5k_rest
        the connection to the API
    job: Job
        the job to release

    """
    try:
        return rest.delete_json(job.rel_self)
    except RequestError as e:
        if not is_already_killed(e):
            raise
        logger.info('Job %s is already killed' % job.uid)


def release_all(rest, site, user=None, deadline=20, clock=time.monotonic):
    """Release all the running jobs of a user on a site

    Parameters
    ----------
    rest: g5k_rest
        the connection to the API
    site: str
        the name of the site on Grid5000 system
    user: str
        the owner of the jobs, the current user by default
    deadline: int
        the number of seconds allowed to release every job

    Returns
    ------
    list of Job
        the released jobs
    """
    start = clock()
    user = user or rest.user or os.environ.get('G5K_USER') or os.environ.get('USER')
    items = rest.get_json('sites/%s/jobs' % site, params={'state': 'running', 'user': user})['items']
    jobs = [Job(item, site=site) for item in items]
    if len(jobs) == 0:
        logger.info('No running job of %s in %s' % (user, site))
        return jobs
    for job in jobs:
        if clock() - start > deadline:
            raise TimedOutError('Cannot release all the jobs of %s in %s within %s s' % (user, site, deadline),
                                job_uid=job.uid, state=job.state)
        release(rest, job)
    logger.info('Released %s jobs in %s' % (len(jobs), site))
    return jobs


def is_job_alive(rest, job_ids):
    """Check if the given job IDs are still alive on Grid5000 system or not

    Parameters
    ----------
    rest: g5k_rest
        the connection to the API
    job_ids: list of tuple
        (job_id, site) pairs as returned by parse_job_ids

    Returns
    ------
    bool
        True: if the given jobs are still alive
        False: if one of the given jobs is dead

    """
    for job_id, site in job_ids:
        job = Job(rest.get_json('sites/%s/jobs/%s' % (site, job_id)), site=site)
        if job.state in ('error', 'finishing', 'terminated'):
            return False
    return True


def parse_job_ids(job_id_str):
    """Parse a given string of job IDs to a list of (job_id, site) tuples

    Parameters
    ----------
    job_id_str: str
        the job IDs in the format of site1:job_id1,site2:job_id2,...

    Returns
    ------
    job_ids: list of tuple
        key: int, the number of the reservation on that site
        value: str, the name of the site on Grid5000 system

    """

    job_ids = list()
    if ':' not in job_id_str:
        raise ValueError('Please give the right format of job IDs <site:id>,<site:id>....')
    for each in job_id_str.split(','):
        if len(each.strip()) == 0:
            continue
        try:
            site, job_id = each.split(':')
            job_id = int(job_id)
        except ValueError:
            raise ValueError('Please give the right format of job IDs <site:id>,<site:id>....')

        job_ids.append((job_id, site.strip()))

    return job_ids
