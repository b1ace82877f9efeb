import time

import requests
import tenacity

from g5kreserve.errors import AuthenticationError, NotFoundError, RequestError, TransportError
from g5kreserve.utils import get_logger


logger = get_logger()

API_VERSION = 'stable'
DEFAULT_API_URI = 'https://api.grid5000.fr'


class g5k_rest(object):
    """Low level access to the REST API of Grid'5000

    Every instance owns its own HTTP session, so several workflows can run side by side
    without sharing a connection.

    Parameters
    ----------
    uri: str
        the url of the REST API
    user, password: str
        credentials when the API is used from outside of Grid'5000
    api_version: str
        the version prefix added to every path
    timeout: int
        the timeout (in seconds) of one HTTP request
    max_retries: int
        how many times a request that timed out is retried
    retry_delay: float
        the delay (in seconds) between two retries
    """

    def __init__(self, uri=DEFAULT_API_URI, user=None, password=None, api_version=API_VERSION,
                 timeout=15, max_retries=3, retry_delay=1.0, sleep=time.sleep, session=None):
        self.endpoint = uri.rstrip('/')
        self.user = user
        self.api_version = api_version
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if user is not None and password is not None:
            self.session.auth = (user, password)

    def api_uri(self, path):
        """Return the path prefixed by the api version, avoiding '//'"""
        path = path.lstrip('/')
        if path.startswith(self.api_version + '/') or path == self.api_version:
            return path
        return '%s/%s' % (self.api_version, path)

    def url(self, path):
        return '%s/%s' % (self.endpoint, self.api_uri(path))

    def _send(self, method, path, **kwargs):
        url = self.url(path)
        logger.debug('%s %s' % (method, url))
        retrying = tenacity.Retrying(
            reraise=True,
            stop=tenacity.stop_after_attempt(self.max_retries + 1),
            wait=tenacity.wait_fixed(self.retry_delay),
            retry=tenacity.retry_if_exception_type(requests.exceptions.Timeout),
            sleep=self.sleep,
            before_sleep=lambda state: logger.warning('Request %s %s timed out, retrying (#%s)'
                                                      % (method, url, state.attempt_number)))
        try:
            response = retrying(self.session.request, method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise TransportError('%s %s failed: %s' % (method, url, e))
        self._check_status(method, url, response)
        return response

    @staticmethod
    def _check_status(method, url, response):
        if response.status_code < 400:
            return
        if response.status_code == 401:
            raise AuthenticationError("Your Grid'5000 credentials are not recognized")
        if response.status_code == 404:
            raise NotFoundError('%s %s: resource not found' % (method, url),
                                status_code=404, body=response.text)
        raise RequestError('%s %s failed with status %s: %s' % (method, url, response.status_code, response.text),
                           status_code=response.status_code, body=response.text)

    def get_json(self, path, params=None):
        """Return the JSON document of a resource"""
        return self._send('GET', path, params=params).json()

    def post_json(self, path, json):
        """Create a resource on the server and return its JSON document"""
        return self._send('POST', path, json=json).json()

    def delete_json(self, path):
        """Delete a resource on the server"""
        response = self._send('DELETE', path)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def test_connection(self):
        """Check that the API answers and the credentials are accepted"""
        return self.get_json('/')

    def close(self):
        self.session.close()
