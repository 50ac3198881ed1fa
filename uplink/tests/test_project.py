"""
Integration Tests: Buckets, Objects and Listings

Tests:
    - Bucket create / ensure / stat / delete and name validation
    - Object stat / delete / copy / move / metadata update
    - Recursive and directory-style listings, metadata flags, cursors
    - Project lifetime (auto_close, use after close)
"""

import pytest

import uplink
from uplink.core.errors import (
    BucketAlreadyExistsError,
    BucketNameInvalidError,
    BucketNotEmptyError,
    BucketNotFoundError,
    HandleReleasedError,
    InternalError,
    ObjectKeyInvalidError,
    ObjectKeyNotFoundError,
)
from uplink.models import (
    ListBucketsOptions,
    ListObjectsOptions,
    Object,
    SystemMetadata,
    UploadInfo,
)
from uplink.tests.helpers import put_object, read_object


class TestBuckets:
    """Tests for bucket operations."""
    
    def test_create_and_stat(self, project):
        created = project.create_bucket("photos")
        assert created.name == "photos"
        assert project.stat_bucket("photos") == created
    
    def test_create_existing(self, project, bucket):
        with pytest.raises(BucketAlreadyExistsError):
            project.create_bucket(bucket)
    
    def test_ensure_is_idempotent(self, project):
        first = project.ensure_bucket("photos")
        assert project.ensure_bucket("photos") == first
    
    @pytest.mark.parametrize("name", ["", "ab", "Photos", "-photos", "a..b", "x" * 64])
    def test_invalid_names(self, project, name):
        with pytest.raises(BucketNameInvalidError):
            project.create_bucket(name)
    
    def test_stat_missing(self, project):
        with pytest.raises(BucketNotFoundError):
            project.stat_bucket("missing")
    
    def test_delete_non_empty(self, project, bucket):
        put_object(project, bucket, "a.txt", b"a")
        with pytest.raises(BucketNotEmptyError):
            project.delete_bucket(bucket)
    
    def test_delete_with_objects(self, project, bucket):
        put_object(project, bucket, "a.txt", b"a")
        assert project.delete_bucket_with_objects(bucket).name == bucket
        with pytest.raises(BucketNotFoundError):
            project.stat_bucket(bucket)
    
    def test_delete_empty(self, project, bucket):
        assert project.delete_bucket(bucket).name == bucket
        with pytest.raises(BucketNotFoundError):
            project.delete_bucket(bucket)
    
    def test_list_buckets_with_cursor(self, project):
        for name in ("charlie", "alpha", "bravo"):
            project.create_bucket(name)
        
        with project.list_buckets() as buckets:
            assert [b.name for b in buckets] == ["alpha", "bravo", "charlie"]
        
        with project.list_buckets(ListBucketsOptions(cursor="alpha")) as buckets:
            assert [b.name for b in buckets] == ["bravo", "charlie"]


class TestObjects:
    """Tests for object operations."""
    
    def test_stat_delete_scenario(self, project, bucket):
        """Upload, stat, delete, then stat again fails with not-found."""
        put_object(project, bucket, "foo/test.txt", b"hello world")
        
        obj = project.stat_object(bucket, "foo/test.txt")
        assert obj.key == "foo/test.txt"
        assert obj.content_length == 11
        assert obj.custom == {}
        assert obj.is_prefix is False
        
        deleted = project.delete_object(bucket, "foo/test.txt")
        assert deleted is not None
        assert deleted.key == "foo/test.txt"
        
        with pytest.raises(ObjectKeyNotFoundError):
            project.stat_object(bucket, "foo/test.txt")
    
    def test_delete_missing_returns_none(self, project, bucket):
        assert project.delete_object(bucket, "never-uploaded") is None
    
    def test_stat_empty_key(self, project, bucket):
        with pytest.raises(ObjectKeyInvalidError):
            project.stat_object(bucket, "")
    
    def test_custom_metadata(self, project, bucket):
        """Custom metadata is stringified, None entries dropped, ordered by key."""
        put_object(project, bucket, "a.txt", b"a", custom={"z": 1, "a": "x", "skip": None})
        assert project.stat_object(bucket, "a.txt").custom == {"a": "x", "z": "1"}
    
    def test_objects_are_hashable(self, project, bucket):
        """Equal objects hash equal regardless of metadata insertion order."""
        put_object(project, bucket, "a.txt", b"a", custom={"camera": "x100"})
        first = project.stat_object(bucket, "a.txt")
        second = project.stat_object(bucket, "a.txt")
        assert len({first, second}) == 1
        
        left = Object("k", custom={"a": "1", "b": "2"})
        right = Object("k", custom={"b": "2", "a": "1"})
        assert left == right
        assert hash(left) == hash(right)
        assert hash(UploadInfo("id", "k", custom={"a": "1"})) == hash(
            UploadInfo("id", "k", custom={"a": "1"})
        )
    
    def test_update_metadata_replaces_set(self, project, bucket):
        put_object(project, bucket, "a.txt", b"a", custom={"old": "1"})
        project.update_object_metadata(bucket, "a.txt", {"new": "2"})
        assert project.stat_object(bucket, "a.txt").custom == {"new": "2"}
        
        project.update_object_metadata(bucket, "a.txt", None)
        assert project.stat_object(bucket, "a.txt").custom == {}
    
    def test_update_metadata_missing(self, project, bucket):
        with pytest.raises(ObjectKeyNotFoundError):
            project.update_object_metadata(bucket, "missing", {"k": "v"})
    
    def test_copy(self, project, bucket):
        put_object(project, bucket, "a.txt", b"content", custom={"k": "v"})
        project.create_bucket("archive")
        
        copied = project.copy_object(bucket, "a.txt", "archive", "copy.txt")
        assert copied.key == "copy.txt"
        assert copied.custom == {"k": "v"}
        assert read_object(project, "archive", "copy.txt") == b"content"
        assert read_object(project, bucket, "a.txt") == b"content"
    
    def test_move(self, project, bucket):
        put_object(project, bucket, "a.txt", b"content")
        project.move_object(bucket, "a.txt", bucket, "b.txt")
        
        assert read_object(project, bucket, "b.txt") == b"content"
        with pytest.raises(ObjectKeyNotFoundError):
            project.stat_object(bucket, "a.txt")
    
    def test_move_to_missing_bucket(self, project, bucket):
        put_object(project, bucket, "a.txt", b"content")
        with pytest.raises(BucketNotFoundError):
            project.move_object(bucket, "a.txt", "nowhere", "a.txt")
        assert project.stat_object(bucket, "a.txt").content_length == 7


class TestListObjects:
    """Tests for object listings."""
    
    @pytest.fixture
    def keys(self, project, bucket):
        for key in ("x/c.txt", "a.txt", "x/b.txt"):
            put_object(project, bucket, key, key.encode(), custom={"key": key})
        return bucket
    
    def test_directory_style(self, project, keys):
        """Non-recursive listing groups x/* into one prefix entry."""
        with project.list_objects(keys) as objects:
            listed = [(obj.key, obj.is_prefix) for obj in objects]
        assert listed == [("a.txt", False), ("x/", True)]
    
    def test_recursive(self, project, keys):
        with project.list_objects(keys, ListObjectsOptions(recursive=True)) as objects:
            listed = [(obj.key, obj.is_prefix) for obj in objects]
        assert listed == [("a.txt", False), ("x/b.txt", False), ("x/c.txt", False)]
    
    def test_prefix_filter(self, project, keys):
        with project.list_objects(keys, ListObjectsOptions(prefix="x/")) as objects:
            assert [obj.key for obj in objects] == ["x/b.txt", "x/c.txt"]
    
    def test_metadata_only_when_requested(self, project, keys):
        """Without system/custom flags the listed metadata is zero-valued."""
        options = ListObjectsOptions(recursive=True)
        with project.list_objects(keys, options) as objects:
            first = next(iter(objects))
        assert first.system == SystemMetadata()
        assert first.custom == {}
        
        options = ListObjectsOptions(recursive=True, system=True, custom=True)
        with project.list_objects(keys, options) as objects:
            first = next(iter(objects))
        assert first.content_length == len(b"a.txt")
        assert first.custom == {"key": "a.txt"}
    
    def test_cursor_resumption(self, project, bucket):
        """Re-listing from the k-th key yields exactly the keys after it."""
        for index in range(6):
            put_object(project, bucket, f"k{index:02d}", b"x")
        
        options = ListObjectsOptions(recursive=True)
        with project.list_objects(bucket, options) as objects:
            all_keys = [obj.key for obj in objects]
        
        for k, cursor in enumerate(all_keys):
            resumed_options = ListObjectsOptions(recursive=True, cursor=cursor)
            with project.list_objects(bucket, resumed_options) as objects:
                assert [obj.key for obj in objects] == all_keys[k + 1:]
    
    def test_manual_protocol(self, project, keys):
        """next/item/err without the for-loop sugar."""
        with project.list_objects(keys, ListObjectsOptions(recursive=True)) as objects:
            with pytest.raises(LookupError):
                objects.item()
            
            seen = []
            while objects.next():
                seen.append(objects.item().key)
            
            assert seen == ["a.txt", "x/b.txt", "x/c.txt"]
            assert objects.err() is None
            assert objects.next() is False
    
    def test_missing_bucket_surfaces_on_next(self, project):
        """Listing errors are reported when iteration stops, not at open."""
        with project.list_objects("missing") as objects:
            assert isinstance(objects.err(), BucketNotFoundError)
            with pytest.raises(BucketNotFoundError):
                objects.next()
    
    def test_empty_bucket(self, project, bucket):
        with project.list_objects(bucket) as objects:
            assert list(objects) == []
            assert objects.err() is None
    
    def test_iterator_after_scope(self, project, keys):
        with project.list_objects(keys) as objects:
            pass
        with pytest.raises(HandleReleasedError):
            objects.next()


class TestProjectLifetime:
    """Tests for project open / close discipline."""
    
    def test_auto_close(self, boundary, access):
        with access.open_project() as project:
            pass
        assert boundary.call_count("close_project") == 1
        with pytest.raises(HandleReleasedError):
            project.stat_bucket("photos")
    
    def test_manual_close(self, boundary, access):
        with access.open_project(auto_close=False) as project:
            project.ensure_bucket("photos")
            project.close()
        assert boundary.call_count("close_project") == 1
    
    def test_double_close_surfaces_boundary_error(self, access):
        with access.open_project(auto_close=False) as project:
            project.close()
            with pytest.raises(InternalError, match="already closed"):
                project.close()
    
    def test_closed_on_caller_error(self, boundary, access):
        with pytest.raises(RuntimeError):
            with access.open_project():
                raise RuntimeError("caller failure")
        assert boundary.call_count("close_project") == 1
    
    def test_open_on_other_satellite(self, registry):
        """An access for an unreachable satellite fails at open_project."""
        source = uplink.InMemoryBoundary(satellite_address="10.0.0.1:7777")
        target = uplink.InMemoryBoundary()
        serialized = source.issue_access()
        
        with uplink.parse_access(serialized, boundary=target, registry=registry) as access:
            with pytest.raises(InternalError, match="connection refused"):
                with access.open_project():
                    pass
        assert target.universe_is_empty()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
