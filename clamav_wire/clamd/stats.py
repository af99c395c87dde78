"""Aggregation of the clamd STATS response.

The exact reply format is subject to changes in future releases of
clamd, so lines we don't know are skipped rather than rejected.

"""
import logging
import typing as t

from .types import ScanResult, Stats


def aggregate_stats(results: t.Iterable[ScanResult]) -> Stats:
    """Fold the records of a STATS response into a Stats.

    :param results: Records of the STATS response
    :return: Statistics, fields not found in the response are None
    """
    stats = Stats()

    for result in results:
        raw = result.raw
        if raw.startswith("POOLS"):
            stats.pools = raw[len("POOLS"):].lstrip(":").strip()
        elif raw.startswith("STATE"):
            stats.state = raw
        elif raw.startswith("THREADS"):
            stats.threads = raw
        elif raw.startswith("QUEUE"):
            stats.queue = raw
        elif raw.startswith("MEMSTATS"):
            stats.memstats = raw
        elif raw.startswith("END"):
            pass
        else:
            logging.debug("Ignoring STATS line: %r", raw)

    return stats
