from g5kreserve.utils import parse_config_file


class cloud_provisioning(object):
    """This is a base class of the provisioners of g5kreserve,
        it loads the provisioning configuration file."""

    def __init__(self, config_file_path=None, configs=None):
        if configs is not None:
            self.configs = configs
        else:
            self.configs = parse_config_file(config_file_path)

    def make_reservation(self):
        """Performing a reservation of the required infrastructure.
        """
        raise NotImplementedError

    def get_resources(self):
        """Retriving the needed information of the list of provisioned resources
        """
        raise NotImplementedError

    def provisioning(self):
        """Performing reservation and retrieving the provisioned resources
        """
        self.make_reservation()
        self.get_resources()
