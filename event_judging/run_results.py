# run_results.py
import argparse
import asyncio
import logging

from event_judging.config import Settings
from event_judging.db.database import DataBase
from event_judging.db.enums import TieBreak
from event_judging.db.schemas.results import AggregationConfig
from event_judging.i18n import Localizer
from event_judging.services.identity import Identity
from event_judging.services.results import ResultsService

logging.basicConfig(level=Settings().log_level)
logger = logging.getLogger("event_judging.run_results")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print the ranked results of one event.")
    parser.add_argument("event_id", type=int)
    parser.add_argument("--by-judge", action="store_true", help="also break team totals down per judge")
    parser.add_argument(
        "--tie-break",
        choices=[t.value for t in TieBreak],
        default=Settings().tie_break,
    )
    return parser.parse_args(argv)


async def main(argv=None) -> None:
    args = parse_args(argv)
    database = DataBase()
    messages = Localizer()
    try:
        await database.create_all()
        results = await ResultsService().event_results(
            Identity.god_admin("cli"),
            args.event_id,
            AggregationConfig(partition_by_judge=args.by_judge, tie_break=TieBreak(args.tie_break)),
        )

        logger.info(messages(
            "results.header",
            event=results.event.name,
            rounds=results.event.rounds,
            total_possible=results.total_possible_per_round,
        ))
        if not results.marks_loaded:
            logger.warning(messages("results.no_marks"))

        judge_names = {j.id: j.name for j in results.judges}
        for category in results.categories:
            logger.info(messages("results.category", category=category.category))
            for team in category.teams:
                logger.info(messages(
                    "results.team_line",
                    rank=team.rank,
                    team_id=team.team_id,
                    school_code=team.school_code,
                    total=team.total_marks,
                ))
                if team.marks_by_judge:
                    for judge_id, total in team.marks_by_judge.items():
                        logger.info("    %s: %d", judge_names.get(judge_id, judge_id), total)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
