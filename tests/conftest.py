import pytest

from g5kreserve.errors import RequestError


class FakeRest(object):
    """Answers requests from canned documents, a list of documents is served one per call"""

    def __init__(self, user='alice'):
        self.user = user
        self.documents = dict()
        self.deleted = list()
        self.delete_errors = dict()
        self.posted = list()
        self.gets = list()
        self.connection_checks = 0
        self.closed = False

    def add(self, path, *documents):
        self.documents[path] = list(documents)

    def get_json(self, path, params=None):
        self.gets.append((path, params))
        documents = self.documents[path]
        if len(documents) > 1:
            document = documents.pop(0)
        else:
            document = documents[0]
        if isinstance(document, Exception):
            raise document
        return document

    def post_json(self, path, json):
        self.posted.append((path, json))
        return self.get_json(path)

    def test_connection(self):
        self.connection_checks += 1
        return dict()

    def close(self):
        self.closed = True

    def delete_json(self, path):
        self.deleted.append(path)
        error = self.delete_errors.get(path)
        if error is not None:
            raise error
        return None


def job_document(uid, state, site='rennes', **kwargs):
    document = {'uid': uid,
                'state': state,
                'links': [{'rel': 'self', 'href': '/stable/sites/%s/jobs/%s' % (site, uid)}]}
    document.update(kwargs)
    return document


def server_error(message):
    return RequestError('DELETE failed with status 500', status_code=500, body=message)


@pytest.fixture
def fake_rest():
    return FakeRest()


@pytest.fixture
def sleeps():
    return list()
