import unittest
from datetime import datetime

from launcher.launch_spec import LaunchSpec, build_launch_options, build_spot_options


def make_spec(**kwargs):
    values = {"region": "us-east-1", "ami": "ami-123", "instance_type": "m1.small"}
    values.update(kwargs)
    return LaunchSpec(**values)


class TestBuildLaunchOptions(unittest.TestCase):
    def test_classic_security_groups_without_subnet(self):
        options = build_launch_options(make_spec(security_groups=["default"]))
        self.assertEqual(options["SecurityGroups"], ["default"])
        self.assertNotIn("SecurityGroupIds", options)
        self.assertNotIn("SubnetId", options)

    def test_security_group_ids_with_subnet(self):
        options = build_launch_options(make_spec(subnet_id="subnet-1", security_groups=["sg-1", "sg-2"]))
        self.assertEqual(options["SecurityGroupIds"], ["sg-1", "sg-2"])
        self.assertNotIn("SecurityGroups", options)
        self.assertEqual(options["SubnetId"], "subnet-1")

    def test_exactly_one_group_key(self):
        for subnet_id in (None, "subnet-1"):
            options = build_launch_options(make_spec(subnet_id=subnet_id, security_groups=["a"]))
            present = [k for k in ("SecurityGroups", "SecurityGroupIds") if k in options]
            self.assertEqual(len(present), 1)

    def test_no_groups_means_no_group_key(self):
        options = build_launch_options(make_spec())
        self.assertNotIn("SecurityGroups", options)
        self.assertNotIn("SecurityGroupIds", options)

    def test_absent_fields_are_dropped(self):
        options = build_launch_options(make_spec())
        self.assertEqual(options, {"ImageId": "ami-123", "InstanceType": "m1.small"})

    def test_optional_fields_are_mapped(self):
        spec = make_spec(
            availability_zone="us-east-1a",
            keypair_name="kp",
            private_ip_address="10.0.0.5",
            tags={"Name": "web"},
            user_data="#!/bin/sh\necho hi",
            monitoring=True,
            block_device_mapping=[{"DeviceName": "/dev/sda1", "Ebs": {"VolumeSize": 20}}],
        )
        options = build_launch_options(spec)
        self.assertEqual(options["Placement"], {"AvailabilityZone": "us-east-1a"})
        self.assertEqual(options["KeyName"], "kp")
        self.assertEqual(options["PrivateIpAddress"], "10.0.0.5")
        self.assertEqual(options["UserData"], "#!/bin/sh\necho hi")
        self.assertEqual(options["Monitoring"], {"Enabled": True})
        self.assertEqual(options["BlockDeviceMappings"][0]["DeviceName"], "/dev/sda1")
        self.assertEqual(
            options["TagSpecifications"],
            [{"ResourceType": "instance", "Tags": [{"Key": "Name", "Value": "web"}]}],
        )

    def test_spec_is_immutable(self):
        spec = make_spec(security_groups=["default"])
        with self.assertRaises(Exception):
            spec.ami = "ami-456"
        self.assertIsInstance(spec.security_groups, tuple)


class TestBuildSpotOptions(unittest.TestCase):
    def test_spot_group_key_follows_subnet(self):
        classic = build_spot_options(make_spec(security_groups=["default"]))
        vpc = build_spot_options(make_spec(subnet_id="subnet-1", security_groups=["sg-1"]))
        self.assertEqual(classic["SecurityGroups"], ["default"])
        self.assertNotIn("SecurityGroupIds", classic)
        self.assertEqual(vpc["SecurityGroupIds"], ["sg-1"])
        self.assertNotIn("SecurityGroups", vpc)

    def test_spot_options_drop_missing_values(self):
        options = build_spot_options(make_spec(spot_instance=True, spot_max_price="0.01"))
        self.assertEqual(options, {"Monitoring": {"Enabled": False}})

    def test_valid_until_is_passed(self):
        until = datetime(2026, 12, 31)
        options = build_spot_options(make_spec(spot_valid_until=until, availability_zone="us-east-1b"))
        self.assertEqual(options["ValidUntil"], until)
        self.assertEqual(options["Placement"], {"AvailabilityZone": "us-east-1b"})


if __name__ == '__main__':
    unittest.main()
