import pytest

from conftest import job_document, server_error
from g5kreserve.api import Job
from g5kreserve.errors import RequestError, TimedOutError
from g5kreserve.experimenter import parse_job_ids, release, release_all, is_job_alive


def running_jobs(*uids):
    return {'items': [job_document(uid, 'running') for uid in uids]}


def test_release(fake_rest):
    job = Job(job_document(42, 'running'), site='rennes')
    release(fake_rest, job)
    assert fake_rest.deleted == ['/stable/sites/rennes/jobs/42']


def test_release_already_killed(fake_rest):
    job = Job(job_document(42, 'running'), site='rennes')
    fake_rest.delete_errors['/stable/sites/rennes/jobs/42'] = server_error('Job 42 is already killed')

    assert release(fake_rest, job) is None
    assert release(fake_rest, job) is None
    assert len(fake_rest.deleted) == 2


def test_release_other_error(fake_rest):
    job = Job(job_document(42, 'running'), site='rennes')
    error = server_error('Internal error')
    fake_rest.delete_errors['/stable/sites/rennes/jobs/42'] = error

    with pytest.raises(RequestError) as exc_info:
        release(fake_rest, job)
    assert exc_info.value is error


def test_release_all(fake_rest):
    fake_rest.add('sites/rennes/jobs', running_jobs(1, 2, 3))
    fake_rest.delete_errors['/stable/sites/rennes/jobs/2'] = server_error('Job 2 is already killed')

    released = release_all(fake_rest, 'rennes')

    assert [job.uid for job in released] == [1, 2, 3]
    assert fake_rest.deleted == ['/stable/sites/rennes/jobs/1',
                                 '/stable/sites/rennes/jobs/2',
                                 '/stable/sites/rennes/jobs/3']
    assert fake_rest.gets == [('sites/rennes/jobs', {'state': 'running', 'user': 'alice'})]


def test_release_all_other_error(fake_rest):
    fake_rest.add('sites/rennes/jobs', running_jobs(1, 2, 3))
    fake_rest.delete_errors['/stable/sites/rennes/jobs/2'] = server_error('Internal error')

    with pytest.raises(RequestError):
        release_all(fake_rest, 'rennes', user='bob')
    assert fake_rest.gets == [('sites/rennes/jobs', {'state': 'running', 'user': 'bob'})]


def test_release_all_without_jobs(fake_rest):
    fake_rest.add('sites/rennes/jobs', {'items': list()})
    assert release_all(fake_rest, 'rennes') == list()
    assert fake_rest.deleted == list()


def test_release_all_deadline(fake_rest):
    fake_rest.add('sites/rennes/jobs', running_jobs(1, 2))
    ticks = iter([0, 1, 30])

    with pytest.raises(TimedOutError):
        release_all(fake_rest, 'rennes', deadline=20, clock=lambda: next(ticks))
    assert fake_rest.deleted == ['/stable/sites/rennes/jobs/1']


def test_is_job_alive(fake_rest):
    fake_rest.add('sites/rennes/jobs/1', job_document(1, 'running'))
    fake_rest.add('sites/nancy/jobs/2', job_document(2, 'error', site='nancy'))

    assert is_job_alive(fake_rest, [(1, 'rennes')]) is True
    assert is_job_alive(fake_rest, [(1, 'rennes'), (2, 'nancy')]) is False


@pytest.mark.parametrize('job_ids', [
    '',
    '   ',
    'a,b,c,d',
    'abcyz',
    'a:b:c',
    'a:a'
])
def test_parse_job_ids_wrong_input(job_ids):
    with pytest.raises(ValueError) as exc_info:
        parse_job_ids(job_ids)
    assert 'Please give the right format of job IDs <site:id>,<site:id>....' in str(exc_info)


@pytest.mark.parametrize('job_ids, results', [
    ('a:1,b:2', [(1, 'a'), (2, 'b')]),
    ('a:1,', [(1, 'a')]),
    ('a:1', [(1, 'a')]),
])
def test_parse_job_ids_correct_input(job_ids, results):
    actual = parse_job_ids(job_ids)
    assert actual == results
