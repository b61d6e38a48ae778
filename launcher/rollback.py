# launcher/rollback.py
import logging
from dataclasses import replace

from launcher.compute import NOT_CREATED
from launcher.errors import LauncherError
from launcher.pipeline import DESTROY

log = logging.getLogger("launcher.rollback")


def terminate(ctx):
    """
    Run the destroy workflow for ctx's machine, synchronously.

    The destroy run gets its own copy of the context: not interrupted, no
    confirmation prompt and no config re-validation. Every call runs destroy
    again; nothing here remembers an earlier terminate.
    """
    destroy_ctx = replace(ctx, interrupted=False, force_confirm_destroy=True, config_validate=False)
    log.info("Rolling back machine %s (instance %s)", ctx.machine.name, ctx.machine.id)
    ctx.action_runner.run(DESTROY, destroy_ctx)


def recover(ctx):
    if isinstance(ctx.error, LauncherError):
        return
    if ctx.machine_state() != NOT_CREATED:
        terminate(ctx)
