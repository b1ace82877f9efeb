from argparse import ArgumentParser
import os
import sys

from g5kreserve.api import g5k_rest, DEFAULT_API_URI, Job
from g5kreserve.experimenter import parse_job_ids, release, release_all


def main(options):
    parser = ArgumentParser(prog='delete_jobs_G5k')

    parser.add_argument('-j', '--job_ids',
                        dest='job_ids',
                        type=str,
                        help='Grid5000 job IDs')
    parser.add_argument('-s', '--sites',
                        dest='sites',
                        type=str,
                        help='release all your running jobs on these sites, e.g. rennes,nancy')

    args = parser.parse_args(options)
    if args.job_ids:
        job_ids = parse_job_ids(args.job_ids)
        print('Jobs will be deleted:')
        print(''.join(['%s:%s\n' % (site, job_id) for job_id, site in job_ids]))
    elif args.sites:
        print('All your running jobs on %s will be deleted' % args.sites)
    else:
        parser.error('Please give either job IDs or sites')

    decision = input('Do you want to delete those jobs [y/n]? ')
    if decision.lower().strip() != 'y':
        print('Bye bye!')
        return

    rest = g5k_rest(uri=DEFAULT_API_URI,
                    user=os.environ.get('G5K_USER'),
                    password=os.environ.get('G5K_PASSWORD'))
    try:
        rest.test_connection()
        if args.job_ids:
            for job_id, site in job_ids:
                release(rest, Job(rest.get_json('sites/%s/jobs/%s' % (site, job_id)), site=site))
        else:
            for site in args.sites.split(','):
                release_all(rest, site.strip())
    finally:
        rest.close()
    print('Delete jobs successfully!')


if __name__ == "__main__":
    main(sys.argv[1:])
