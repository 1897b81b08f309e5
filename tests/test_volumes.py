"""Tests for volume enumeration and resolution."""

import pytest

from resticops.volumes.enumerate import VolumeDescriptor, parse_lsblk
from resticops.volumes.resolver import AmbiguousVolumeError, VolumeResolver

LSBLK_OUTPUT = {
    "blockdevices": [
        {
            "name": "sdb", "path": "/dev/sdb", "type": "disk", "mountpoint": None,
            "label": None, "fstype": None, "pttype": "gpt",
            "serial": "  SERIAL123  ", "model": "Portable SSD", "vendor": "Samsung",
            "children": [
                {
                    "name": "sdb1", "path": "/dev/sdb1", "type": "part",
                    "mountpoint": "/media/backup", "label": "PHOTOS", "fstype": "exfat",
                    "pttype": "gpt", "serial": None, "model": None, "vendor": None,
                },
                {
                    "name": "sdb2", "path": "/dev/sdb2", "type": "part",
                    "mountpoint": None, "label": "SPARE", "fstype": "ext4",
                    "pttype": "gpt", "serial": None, "model": None, "vendor": None,
                },
            ],
        },
        {
            "name": "sda", "path": "/dev/sda", "type": "disk", "mountpoint": None,
            "label": None, "fstype": None, "pttype": "dos",
            "serial": "ROOTDISK", "model": "Internal", "vendor": "ATA",
            "children": [
                {
                    "name": "sda1", "path": "/dev/sda1", "type": "part",
                    "mountpoint": "/", "label": "root", "fstype": "ext4",
                    "pttype": "dos", "serial": None, "model": None, "vendor": None,
                },
            ],
        },
    ]
}


def make_volume(mount_path, serial="", caption="", label="", disk_index=0):
    return VolumeDescriptor(
        mount_path=mount_path,
        disk_index=disk_index,
        serial_number=serial,
        caption=caption,
        label=label,
    )


class TestParseLsblk:
    """Test flattening lsblk JSON into volume descriptors."""

    def test_only_mounted_volumes_are_returned(self):
        """Unmounted partitions and bare disks are skipped."""
        volumes = parse_lsblk(LSBLK_OUTPUT)

        assert sorted(v.mount_path for v in volumes) == ["/", "/media/backup"]

    def test_partition_inherits_disk_attributes(self):
        """Serial, model and partition style come from the parent disk."""
        volumes = {v.mount_path: v for v in parse_lsblk(LSBLK_OUTPUT)}
        backup = volumes["/media/backup"]

        assert backup.serial_number == "SERIAL123"
        assert backup.caption == "Samsung Portable SSD"
        assert backup.manufacturer == "Samsung"
        assert backup.model == "Portable SSD"
        assert backup.label == "PHOTOS"
        assert backup.filesystem == "exfat"
        assert backup.partition_style == "gpt"

    def test_disk_index_follows_sorted_disk_names(self):
        """Disks are numbered by name, not by lsblk order."""
        volumes = {v.mount_path: v for v in parse_lsblk(LSBLK_OUTPUT)}

        assert volumes["/"].disk_index == 0
        assert volumes["/media/backup"].disk_index == 1

    def test_empty_output(self):
        """No block devices yields no volumes."""
        assert parse_lsblk({}) == []


class TestVolumeResolver:
    """Test identifier matching."""

    def setup_method(self):
        self.volumes = [
            make_volume("/media/a", serial="SERIAL123 ", caption="WD Elements", label="BACKUP"),
            make_volume("/media/b", serial="OTHER", caption="Kingston DataTraveler", label="USB"),
            make_volume("/media/c", serial="MULTI", caption="Seagate", label="PART1", disk_index=2),
            make_volume("/media/d", serial="MULTI", caption="Seagate", label="PART2", disk_index=2),
        ]
        self.resolver = VolumeResolver(lambda: self.volumes)

    def test_match_by_trimmed_serial(self):
        """Serial numbers are compared after trimming whitespace."""
        found = self.resolver.resolve("SERIAL123")

        assert [v.mount_path for v in found] == ["/media/a"]

    def test_match_by_caption(self):
        """The disk caption identifies a volume."""
        found = self.resolver.resolve("Kingston DataTraveler")

        assert [v.mount_path for v in found] == ["/media/b"]

    def test_match_by_label(self):
        """The filesystem label identifies a volume."""
        found = self.resolver.resolve("PART2")

        assert [v.mount_path for v in found] == ["/media/d"]

    def test_no_match(self):
        """Unknown identifiers resolve to nothing."""
        assert self.resolver.resolve("MISSING") == []
        assert self.resolver.resolve_one("MISSING") is None

    def test_multiple_matches(self):
        """A multi-partition disk matches more than once."""
        found = self.resolver.resolve("MULTI")

        assert len(found) == 2

        with pytest.raises(AmbiguousVolumeError) as excinfo:
            self.resolver.resolve_one("MULTI")
        assert len(excinfo.value.matches) == 2

    @pytest.mark.parametrize("identifier", [None, ""])
    def test_empty_identifier_matches_everything(self, identifier):
        """A null or empty identifier matches every volume."""
        assert len(self.resolver.resolve(identifier)) == 4

    def test_resolve_reads_live_state(self):
        """Each call enumerates volumes again."""
        assert self.resolver.resolve_one("OTHER") is not None

        self.volumes.pop(1)

        assert self.resolver.resolve_one("OTHER") is None
