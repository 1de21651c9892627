"""
Bulk submission: turn a set of stored PGN files into pending analyses.

Each stored file may hold many games. Every game in which the submitting
player can be found becomes one analysis, created and dispatched before the
next game is looked at. Games without the player, or that are not valid
game records, are reported back as skipped.
"""

import logging

from blueolive.core.analysis_store import AnalysisStore
from blueolive.core.dispatch import Dispatcher
from blueolive.core.ownership import Owner
from blueolive.core.pgn_parser import is_valid_pgn, split_pgn
from blueolive.core.player_resolver import resolve_player_color
from blueolive.core.storage import ObjectStorage
from blueolive.models.pydantic_models.analysis import (
    BulkAnalysisResponse,
    SkippedGame,
)
from blueolive.utils import prefixed_id

logger = logging.getLogger(__name__)

BATCH_ID_PREFIX = "batch"

MALFORMED_GAME_REASON = "Malformed game record (missing headers or moves)"


def player_not_found_reason(player_name: str) -> str:
    return f'Player "{player_name}" not found in this game'


async def submit_bulk_analysis(
    urls: list[str],
    owner: Owner,
    player_name: str,
    storage: ObjectStorage,
    store: AnalysisStore,
    dispatcher: Dispatcher,
) -> BulkAnalysisResponse:
    """
    Create and dispatch one analysis per matching game across ``urls``.

    Files are processed in order. A file that cannot be read raises
    ``StorageError`` and a failed hand-off raises ``DispatchError``; in both
    cases analyses created before the failure stay stored and pending.

    Returns:
        BulkAnalysisResponse with the batch id, the created analysis ids in
        order, their count and the skipped games (None when nothing was skipped)
    """
    batch_id = prefixed_id(BATCH_ID_PREFIX)
    analysis_ids: list[str] = []
    skipped_games: list[SkippedGame] = []

    logger.info(
        f"Starting bulk submission {batch_id}: {len(urls)} file(s) for {owner.key}"
    )

    for url in urls:
        try:
            content = await storage.read_text(url)
        except Exception as e:
            logger.error(f"Failed to process URL {url}: {e}")
            raise

        games = split_pgn(content)
        logger.info(f"{url}: {len(games)} game(s) found")

        for game in games:
            white, black = game.metadata.white, game.metadata.black

            if not is_valid_pgn(game.pgn):
                logger.warning(f"Skipping malformed game in {url}: {white} vs {black}")
                skipped_games.append(
                    SkippedGame(white=white, black=black, reason=MALFORMED_GAME_REASON)
                )
                continue

            player_color = resolve_player_color(white, black, player_name)
            if player_color is None:
                logger.warning(
                    f'Player "{player_name}" not found in game: {white} vs {black}'
                )
                skipped_games.append(
                    SkippedGame(
                        white=white,
                        black=black,
                        reason=player_not_found_reason(player_name),
                    )
                )
                continue

            analysis = await store.create(
                owner=owner,
                batch_id=batch_id,
                game=game,
                source_url=url,
                player_name=player_name,
                player_color=player_color,
            )
            await dispatcher.dispatch(analysis.analysis_id)
            analysis_ids.append(analysis.analysis_id)

    logger.info(
        f"Bulk submission {batch_id} created {len(analysis_ids)} analyses, "
        f"skipped {len(skipped_games)}"
    )
    return BulkAnalysisResponse(
        batch_id=batch_id,
        analysis_ids=analysis_ids,
        total_games=len(analysis_ids),
        skipped_games=skipped_games or None,
    )
