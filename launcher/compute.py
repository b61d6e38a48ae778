# launcher/compute.py
import base64
import logging

import boto3
from botocore.exceptions import ClientError

from launcher.spot import SpotRequest

log = logging.getLogger("launcher.compute")

NOT_CREATED = "not_created"
GONE_STATES = ("terminated",)


class Instance:
    """Handle on a single EC2 instance, backed by describe calls."""

    def __init__(self, instance_id: str, compute: "Ec2ComputeClient"):
        self.id = instance_id
        self.compute = compute

    def ready(self) -> bool:
        desc = self.compute.describe_instance(self.id)
        return bool(desc) and desc["State"]["Name"] == "running"

    def address(self, private=False):
        desc = self.compute.describe_instance(self.id) or {}
        if private:
            return desc.get("PrivateIpAddress")
        return desc.get("PublicIpAddress") or desc.get("PublicDnsName") or None

    def __repr__(self):
        return f"Instance({self.id!r})"


class Ec2ComputeClient:
    def __init__(self, region: str, profile: str | None = None, session=None):
        if session is None:
            session = boto3.Session(profile_name=profile, region_name=region) if profile else boto3.Session(region_name=region)
        self.region = region
        self.ec2 = session.client("ec2", region_name=region)

    def create_instance(self, options: dict) -> Instance:
        resp = self.ec2.run_instances(MinCount=1, MaxCount=1, **options)
        instance_id = resp["Instances"][0]["InstanceId"]
        log.info("Instance requested: %s", instance_id)
        return Instance(instance_id, self)

    def request_spot_instances(self, image_id, instance_type, max_price, options: dict) -> SpotRequest:
        options = dict(options)
        valid_until = options.pop("ValidUntil", None)
        if options.get("UserData") is not None:
            # RunInstances encodes UserData itself, the spot launch specification does not
            options["UserData"] = base64.b64encode(options["UserData"].encode()).decode()

        launch_spec = {"ImageId": image_id, "InstanceType": instance_type, **options}
        kwargs = {"SpotPrice": str(max_price), "InstanceCount": 1, "LaunchSpecification": launch_spec}
        if valid_until is not None:
            kwargs["ValidUntil"] = valid_until

        resp = self.ec2.request_spot_instances(**kwargs)
        return SpotRequest.from_response(resp["SpotInstanceRequests"][0])

    def describe_spot_instance_request(self, request_id: str) -> SpotRequest | None:
        try:
            resp = self.ec2.describe_spot_instance_requests(SpotInstanceRequestIds=[request_id])
        except ClientError as e:
            # freshly created requests are not always visible yet
            if e.response["Error"]["Code"] == "InvalidSpotInstanceRequestID.NotFound":
                return None
            raise
        requests = resp.get("SpotInstanceRequests") or []
        return SpotRequest.from_response(requests[0]) if requests else None

    def cancel_spot_instance_requests(self, request_id: str):
        self.ec2.cancel_spot_instance_requests(SpotInstanceRequestIds=[request_id])

    def get_instance(self, instance_id: str) -> Instance:
        return Instance(instance_id, self)

    def describe_instance(self, instance_id: str) -> dict | None:
        try:
            resp = self.ec2.describe_instances(InstanceIds=[instance_id])
        except ClientError as e:
            if e.response["Error"]["Code"] == "InvalidInstanceID.NotFound":
                return None
            raise
        reservations = resp.get("Reservations") or []
        if not reservations or not reservations[0].get("Instances"):
            return None
        return reservations[0]["Instances"][0]

    def instance_state(self, instance_id: str | None) -> str:
        if not instance_id:
            return NOT_CREATED
        desc = self.describe_instance(instance_id)
        if desc is None or desc["State"]["Name"] in GONE_STATES:
            return NOT_CREATED
        return desc["State"]["Name"]

    def terminate_instance(self, instance_id: str):
        log.info("Terminating instance %s", instance_id)
        self.ec2.terminate_instances(InstanceIds=[instance_id])
