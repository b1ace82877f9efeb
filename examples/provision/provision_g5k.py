from argparse import ArgumentParser
import traceback
import sys

from g5kreserve.utils import get_logger
from g5kreserve.provisioner import g5k_api_provisioner

logger = get_logger()


def parse_args(options):
    parser = ArgumentParser(prog='provision_g5k')
    parser.add_argument("--system_config_file",
                        dest="config_file_path",
                        help="the path to the provisioning configuration file.",
                        type=str)
    parser.add_argument("-k", dest="keep_alive",
                        help="keep the reservation alive after deploying.",
                        action="store_true")
    parser.add_argument("-j", dest="job_ids",
                        help="the reserved job ids on grid5k. The format is site1:job_id1,site2:job_id2,...",
                        type=str)
    return parser.parse_args(options)


def main(options):
    args = parse_args(options)
    logger.info("STARTING PROVISIONING NODES")
    provisioner = None
    try:
        provisioner = g5k_api_provisioner(config_file_path=args.config_file_path,
                                          job_ids=args.job_ids,
                                          keep_alive=args.keep_alive)
        provisioner.rest.test_connection()
        provisioner.provisioning()
        logger.info('Provisioned hosts:\n%s' % '\n'.join(provisioner.hosts))
        logger.info("FINISH PROVISIONING NODES")
    except Exception as e:
        logger.error('Program is terminated by the following exception: %s' % e, exc_info=True)
        traceback.print_exc()
    except KeyboardInterrupt:
        logger.info('Program is terminated by keyboard interrupt.')

    if provisioner is None:
        return
    try:
        if not args.keep_alive:
            logger.info('Deleting reservation')
            provisioner.release()
        else:
            logger.info('Reserved nodes are kept alive for inspection purpose.')
    finally:
        provisioner.rest.close()


if __name__ == "__main__":
    main(sys.argv[1:])
