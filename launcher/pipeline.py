# launcher/pipeline.py
import logging

from launcher.config_loader import validate_launch_spec

log = logging.getLogger("launcher.pipeline")


class ActionRunner:
    """
    Runs a workflow: a list of action classes chained middleware-style.

    Each action is built with the next callable in the chain and called with the
    provisioning context. If an exception escapes the chain, every action that
    was entered gets recover(ctx), innermost first, before the error is re-raised.
    The runner keeps no state between runs, so an action may start another
    workflow (e.g. a rollback destroy) while its own run is still in progress.
    """

    def run(self, workflow, ctx):
        entered = []

        def build(index):
            if index == len(workflow):
                return lambda _ctx: None
            action = workflow[index](build(index + 1))

            def call(_ctx):
                entered.append(action)
                return action(_ctx)

            return call

        chain = build(0)
        log.debug("Running workflow %s", [a.__name__ for a in workflow])
        try:
            return chain(ctx)
        except Exception as e:
            ctx.error = e
            for action in reversed(entered):
                recover = getattr(action, "recover", None)
                if recover is not None:
                    recover(ctx)
            raise


class ValidateConfig:
    def __init__(self, app):
        self.app = app

    def __call__(self, ctx):
        if ctx.config_validate:
            validate_launch_spec(ctx.spec)
        return self.app(ctx)


class ConfirmDestroy:
    def __init__(self, app):
        self.app = app

    def __call__(self, ctx):
        if not ctx.force_confirm_destroy:
            answer = input(f"Are you sure you want to destroy '{ctx.machine.name}' ({ctx.machine.id})? [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                ctx.ui.info("Machine will not be destroyed.")
                return None
        return self.app(ctx)


class TerminateInstance:
    def __init__(self, app):
        self.app = app

    def __call__(self, ctx):
        if ctx.machine.id is not None:
            ctx.ui.info("Terminating the instance...")
            ctx.compute.terminate_instance(ctx.machine.id)
            ctx.machine.id = None
        return self.app(ctx)


DESTROY = [ValidateConfig, ConfirmDestroy, TerminateInstance]
