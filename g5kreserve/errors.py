class G5KError(Exception):
    def __init__(self, message):
        self.message = message
        super(G5KError, self).__init__(message)


class ConfigurationError(G5KError):
    """Invalid or conflicting reservation options. Raised before any request is sent."""

    def __init__(self, message, option=None):
        self.option = option
        super(ConfigurationError, self).__init__(message)


class TransportError(G5KError):
    pass


class AuthenticationError(G5KError):
    pass


class RequestError(G5KError):
    """The API answered with an error status, the body of the response is kept"""

    def __init__(self, message, status_code=None, body=''):
        self.status_code = status_code
        self.body = body or ''
        super(RequestError, self).__init__(message)


class NotFoundError(RequestError):
    pass


class JobError(G5KError):
    def __init__(self, message, job_uid=None, state=None):
        self.job_uid = job_uid
        self.state = state
        super(JobError, self).__init__('%s (job: %s, last state: %s)' % (message, job_uid, state))


class JobFailedError(JobError):
    pass


class TimedOutError(JobError):
    pass


class DeploymentFailedError(JobError):
    def __init__(self, message, job_uid=None, state=None, failures=None):
        self.failures = failures or dict()
        super(DeploymentFailedError, self).__init__(message, job_uid=job_uid, state=state)
