from .g5k_experimenter import (
    release,
    release_all,
    is_job_alive,
    is_already_killed,
    parse_job_ids
)
