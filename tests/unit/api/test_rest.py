import json

import pytest
import requests

from g5kreserve.api import g5k_rest
from g5kreserve.errors import (AuthenticationError, NotFoundError, RequestError, TransportError)


class FakeResponse(object):
    def __init__(self, status_code=200, document=None, text=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(document) if document is not None else ''
        self.text = text
        self.content = text.encode()

    def json(self):
        return json.loads(self.text)


class FakeSession(object):
    def __init__(self, *answers):
        self.answers = list(answers)
        self.headers = dict()
        self.auth = None
        self.requests = list()

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def sleeps():
    return list()


def make_rest(session, sleeps, **kwargs):
    return g5k_rest(uri='https://api.grid5000.fr/', session=session, sleep=sleeps.append, **kwargs)


@pytest.mark.parametrize('path, url', [
    ('sites', 'https://api.grid5000.fr/stable/sites'),
    ('/sites/rennes/jobs', 'https://api.grid5000.fr/stable/sites/rennes/jobs'),
    ('/stable/sites/rennes/jobs/42', 'https://api.grid5000.fr/stable/sites/rennes/jobs/42'),
    ('/', 'https://api.grid5000.fr/stable/'),
])
def test_url(path, url, sleeps):
    assert make_rest(FakeSession(), sleeps).url(path) == url


def test_get_json(sleeps):
    session = FakeSession(FakeResponse(document={'items': [{'uid': 'rennes'}]}))
    rest = make_rest(session, sleeps, user='alice', password='secret')

    assert rest.get_json('sites', params={'state': 'running'}) == {'items': [{'uid': 'rennes'}]}
    method, url, kwargs = session.requests[0]
    assert (method, url) == ('GET', 'https://api.grid5000.fr/stable/sites')
    assert kwargs == {'timeout': 15, 'params': {'state': 'running'}}
    assert session.auth == ('alice', 'secret')
    assert session.headers['Accept'] == 'application/json'


def test_get_json_retries_timeouts(sleeps):
    session = FakeSession(requests.exceptions.Timeout(),
                          requests.exceptions.Timeout(),
                          FakeResponse(document={'uid': 42}))
    rest = make_rest(session, sleeps)

    assert rest.get_json('sites/rennes/jobs/42') == {'uid': 42}
    assert len(session.requests) == 3
    assert sleeps == [1.0, 1.0]


def test_get_json_too_many_timeouts(sleeps):
    session = FakeSession(*[requests.exceptions.Timeout() for _ in range(4)])
    rest = make_rest(session, sleeps)

    with pytest.raises(TransportError):
        rest.get_json('sites')
    assert len(session.requests) == 4


def test_connection_error_is_not_retried(sleeps):
    session = FakeSession(requests.exceptions.ConnectionError('refused'))
    rest = make_rest(session, sleeps)

    with pytest.raises(TransportError):
        rest.get_json('sites')
    assert len(session.requests) == 1
    assert sleeps == list()


@pytest.mark.parametrize('status_code, error', [
    (401, AuthenticationError),
    (404, NotFoundError),
    (400, RequestError),
    (500, RequestError),
])
def test_error_status(status_code, error, sleeps):
    session = FakeSession(FakeResponse(status_code, text='something went wrong'))
    rest = make_rest(session, sleeps)

    with pytest.raises(error) as exc_info:
        rest.get_json('sites/unknown')
    if isinstance(exc_info.value, RequestError):
        assert exc_info.value.status_code == status_code
        assert exc_info.value.body == 'something went wrong'


def test_post_json(sleeps):
    session = FakeSession(FakeResponse(201, document={'uid': 42}))
    rest = make_rest(session, sleeps)

    assert rest.post_json('sites/rennes/jobs', {'resources': '/nodes=1'}) == {'uid': 42}
    method, url, kwargs = session.requests[0]
    assert method == 'POST'
    assert kwargs['json'] == {'resources': '/nodes=1'}


def test_post_json_is_not_retried_on_server_error(sleeps):
    session = FakeSession(FakeResponse(500, text='oops'))
    rest = make_rest(session, sleeps)

    with pytest.raises(RequestError):
        rest.post_json('sites/rennes/jobs', {'resources': '/nodes=1'})
    assert len(session.requests) == 1


def test_delete_json(sleeps):
    session = FakeSession(FakeResponse(202, text=''), FakeResponse(500, text='Job 42 is already killed'))
    rest = make_rest(session, sleeps)

    assert rest.delete_json('/stable/sites/rennes/jobs/42') is None
    with pytest.raises(RequestError) as exc_info:
        rest.delete_json('/stable/sites/rennes/jobs/42')
    assert 'already killed' in exc_info.value.body


def test_connection_and_close(sleeps):
    session = FakeSession(FakeResponse(document={'version': 'stable'}), FakeResponse(401, text='Unauthorized'))
    session.closed = False
    session.close = lambda: setattr(session, 'closed', True)
    rest = make_rest(session, sleeps)

    assert rest.test_connection() == {'version': 'stable'}
    assert session.requests[0][1] == 'https://api.grid5000.fr/stable/'
    with pytest.raises(AuthenticationError):
        rest.test_connection()
    rest.close()
    assert session.closed is True
