"""
Integration Tests: Edge Credentials and Share URLs

Tests:
    - Registering an access with the auth service
    - Dial and registration failures
    - Share URL templating (raw and landing page)
"""

import pytest

from uplink.boundary.memory import DEFAULT_EDGE_AUTH_ADDRESS, DEFAULT_EDGE_ENDPOINT
from uplink.core.errors import (
    EdgeAuthDialFailedError,
    EdgeRegisterAccessFailedError,
    InternalError,
)
from uplink.models import (
    EdgeConfig,
    EdgeRegisterAccessOptions,
    Permission,
    ShareURLOptions,
)

BASE_URL = "https://link.edge.test"


@pytest.fixture
def edge_config():
    return EdgeConfig(auth_service_address=DEFAULT_EDGE_AUTH_ADDRESS)


class TestRegisterAccess:
    """Tests for Access.edge_register_access."""
    
    def test_register(self, access, edge_config):
        credential = access.edge_register_access(
            edge_config, EdgeRegisterAccessOptions(is_public=True),
        )
        assert credential.endpoint == DEFAULT_EDGE_ENDPOINT
        assert credential.access_key_id
        assert credential.secret_key
        assert credential.credentials.access_key_id == credential.access_key_id
    
    def test_register_is_stable_per_access(self, access, edge_config):
        first = access.edge_register_access(edge_config)
        second = access.edge_register_access(edge_config)
        assert first.access_key_id == second.access_key_id
    
    def test_shared_access_gets_own_credentials(self, access, edge_config):
        with access.share(Permission(allow_download=True)) as shared:
            child = shared.edge_register_access(edge_config)
        parent = access.edge_register_access(edge_config)
        assert child.access_key_id != parent.access_key_id
    
    def test_dial_failure(self, access):
        config = EdgeConfig(
            auth_service_address="unreachable.test:1",
            insecure_unencrypted_connection=True,
        )
        with pytest.raises(EdgeAuthDialFailedError):
            access.edge_register_access(config)
    
    def test_revoked_access_refused(self, access, project, edge_config):
        with access.share(Permission(allow_list=True)) as shared:
            project.revoke_access(shared)
            with pytest.raises(EdgeRegisterAccessFailedError, match="access revoked"):
                shared.edge_register_access(edge_config)


class TestShareURL:
    """Tests for EdgeCredential.join_share_url."""
    
    @pytest.fixture
    def credential(self, access, edge_config):
        return access.edge_register_access(edge_config)
    
    def test_landing_page(self, credential):
        url = credential.join_share_url(BASE_URL, "photos", "2024/cat.jpg")
        assert url == f"{BASE_URL}/s/{credential.access_key_id}/photos/2024/cat.jpg"
    
    def test_raw(self, credential):
        url = credential.join_share_url(
            BASE_URL + "/", "photos", "cat.jpg", ShareURLOptions(raw=True),
        )
        assert url == f"{BASE_URL}/raw/{credential.access_key_id}/photos/cat.jpg"
    
    def test_bucket_only(self, credential):
        url = credential.join_share_url(BASE_URL, "photos")
        assert url == f"{BASE_URL}/s/{credential.access_key_id}/photos/"
    
    def test_whole_access(self, credential):
        assert credential.join_share_url(BASE_URL) == f"{BASE_URL}/s/{credential.access_key_id}"
    
    def test_key_escaping(self, credential):
        url = credential.join_share_url(BASE_URL, "photos", "my dir/a b.jpg")
        assert url.endswith("/photos/my%20dir/a%20b.jpg")
    
    def test_key_without_bucket(self, credential):
        with pytest.raises(InternalError, match="bucket is required"):
            credential.join_share_url(BASE_URL, "", "cat.jpg")
    
    def test_raw_requires_key(self, credential):
        with pytest.raises(InternalError):
            credential.join_share_url(BASE_URL, "photos", options=ShareURLOptions(raw=True))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
