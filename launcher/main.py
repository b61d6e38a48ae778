# launcher/main.py
import argparse
import logging
import logging.config
import signal
import yaml
from dataclasses import replace

from launcher.compute import Ec2ComputeClient
from launcher.config_loader import load_launch_spec, load_runtime_config
from launcher.context import MachineRecord, ProvisioningContext
from launcher.errors import LauncherError
from launcher.pipeline import DESTROY, ActionRunner
from launcher.remote import SSHProbe
from launcher.run_instance import LAUNCH
from launcher.ui import UI


def load_logging_config(path="config/logging.yaml"):
    try:
        with open(path) as f:
            cfg = yaml.safe_load(f)
        logging.config.dictConfig(cfg)
    except Exception:
        logging.basicConfig(
            level=logging.INFO,
            format='{"time":"%(asctime)s","level":"%(levelname)s","name":"%(name)s","msg":"%(message)s"}',
        )


def install_interrupt_handler(ctx):
    def handler(signum, frame):
        if ctx.interrupted:
            raise KeyboardInterrupt
        ctx.ui.warn("Waiting for cleanup before exiting (press Ctrl-C again to force)...")
        ctx.interrupted = True

    return signal.signal(signal.SIGINT, handler)


def build_parser():
    parser = argparse.ArgumentParser(description="Launch (or destroy) a single EC2 instance, on-demand or spot.")
    parser.add_argument("--config", default=None, help="Runtime config path (default config/runtime.yaml)")
    parser.add_argument("--logging-config", default="config/logging.yaml", help="Logging dictConfig YAML")
    parser.add_argument("--region", help="AWS region; overrides config")
    parser.add_argument("--profile", help="Optional AWS CLI profile")
    parser.add_argument("--name", default="default", help="Machine name used in messages")

    subparsers = parser.add_subparsers(dest="command", required=True)

    launch = subparsers.add_parser("launch", help="Launch an instance and wait until it accepts SSH")
    launch.add_argument("--ami-id", help="AMI ID; overrides config")
    launch.add_argument("--instance-type", help="Instance type; overrides config")
    launch.add_argument("--key-name", help="EC2 key pair name; overrides config")
    launch.add_argument("--subnet-id", help="VPC subnet ID; overrides config")
    launch.add_argument("--security-groups", help="Comma-separated security group names (or IDs with --subnet-id)")
    launch.add_argument("--spot", action="store_true", help="Request a spot instance instead of on-demand")
    launch.add_argument("--max-spot-price", help="Max spot price (required with --spot)")
    launch.add_argument("--ready-timeout", type=int, help="Seconds to wait for the instance to be running")
    launch.add_argument("--ssh-user", default=None, help="SSH user for the readiness probe (default ubuntu)")
    launch.add_argument("--ssh-key", default=None, help="Private key for the readiness probe")

    destroy = subparsers.add_parser("destroy", help="Terminate an instance")
    destroy.add_argument("--instance-id", required=True)
    destroy.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    return parser


def apply_overrides(spec, args):
    overrides = {
        "ami": args.ami_id,
        "instance_type": args.instance_type,
        "keypair_name": args.key_name,
        "subnet_id": args.subnet_id,
        "spot_max_price": args.max_spot_price,
        "instance_ready_timeout": args.ready_timeout,
    }
    if args.security_groups:
        overrides["security_groups"] = [g.strip() for g in args.security_groups.split(",") if g.strip()]
    if args.spot:
        overrides["spot_instance"] = True
    return replace(spec, **{k: v for k, v in overrides.items() if v is not None})


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    load_logging_config(args.logging_config)
    log = logging.getLogger("launcher.main")

    cfg = load_runtime_config(args.config)
    spec = load_launch_spec(cfg, region=args.region)
    if args.command == "launch":
        spec = apply_overrides(spec, args)
    if not spec.region:
        raise SystemExit("region not set (pass --region or set region in config/runtime.yaml)")

    compute = Ec2ComputeClient(spec.region, profile=args.profile or cfg.get("profile"))
    ctx = ProvisioningContext(
        spec=spec,
        compute=compute,
        ui=UI(prefix=f"==> {args.name}: "),
        action_runner=ActionRunner(),
        machine=MachineRecord(name=args.name),
    )

    try:
        if args.command == "launch":
            ctx.remote = SSHProbe(
                user=args.ssh_user or cfg.get("ssh_user") or "ubuntu",
                key_path=args.ssh_key or cfg.get("ssh_key_path"),
                use_private_ip=spec.use_private_ip_address,
            )
            previous = install_interrupt_handler(ctx)
            try:
                ctx.action_runner.run(LAUNCH, ctx)
            finally:
                signal.signal(signal.SIGINT, previous)
            log.info("Launch finished | machine=%s instance=%s metrics=%s", ctx.machine.name, ctx.machine.id, ctx.metrics)
            if ctx.machine.id:
                print(f"✅ Instance ready: {ctx.machine.id}")
        else:
            ctx.machine.id = args.instance_id
            ctx.force_confirm_destroy = args.yes
            ctx.config_validate = False
            ctx.action_runner.run(DESTROY, ctx)
    except LauncherError as e:
        raise SystemExit(f"❌ {e}")


if __name__ == "__main__":
    main()
