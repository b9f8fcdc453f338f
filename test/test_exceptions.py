"""
Tests for custom exception classes

Tests exception initialization, messages, status codes, error codes and details.
"""

from fastapi import status

from app.exceptions import (
    CMSError,
    DuplicateResourceError,
    ErrorCode,
    PluginAlreadyInstalledError,
    PluginDependencyError,
    PluginError,
    PluginIdMismatchError,
    PluginLoadError,
    PluginNotFoundError,
    PluginOperationError,
    PluginStoreError,
    ResourceNotFoundError,
)


class TestCMSError:
    """Test base CMSError class"""

    def test_cms_exception_default(self):
        """Test CMSError with default values"""
        exc = CMSError("Test error")
        assert str(exc) == "Test error"
        assert exc.message == "Test error"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.details == {}
        assert exc.error_code == ErrorCode.UNKNOWN_ERROR

    def test_cms_exception_with_custom_status(self):
        exc = CMSError("Test error", status_code=status.HTTP_400_BAD_REQUEST)
        assert exc.status_code == status.HTTP_400_BAD_REQUEST

    def test_cms_exception_with_details(self):
        details = {"key": "value", "count": 42}
        exc = CMSError("Test error", details=details)
        assert exc.details == details

    def test_cms_exception_error_code_override(self):
        exc = CMSError("Test error", error_code=ErrorCode.INTERNAL_ERROR)
        assert exc.error_code == ErrorCode.INTERNAL_ERROR
        # the class default is left alone
        assert CMSError.error_code == ErrorCode.UNKNOWN_ERROR


class TestResourceExceptions:
    """Test generic resource exceptions"""

    def test_resource_not_found_without_id(self):
        exc = ResourceNotFoundError("Plugin")
        assert str(exc) == "Plugin not found"
        assert exc.status_code == status.HTTP_404_NOT_FOUND
        assert exc.details == {"resource_type": "Plugin", "resource_id": None}

    def test_resource_not_found_with_id(self):
        exc = ResourceNotFoundError("Plugin", "seo-toolkit")
        assert str(exc) == "Plugin with id 'seo-toolkit' not found"

    def test_duplicate_resource_error(self):
        exc = DuplicateResourceError("Plugin", "id", "seo-toolkit")
        assert str(exc) == "Plugin with id 'seo-toolkit' already exists"
        assert exc.status_code == status.HTTP_409_CONFLICT
        assert exc.error_code == ErrorCode.VALIDATION_DUPLICATE_RESOURCE


class TestPluginExceptions:
    """Test plugin runtime exceptions"""

    def test_plugin_error_records_plugin_id(self):
        exc = PluginError("Something failed", plugin_id="seo-toolkit")
        assert exc.plugin_id == "seo-toolkit"
        assert exc.details == {"plugin_id": "seo-toolkit"}
        assert exc.error_code == ErrorCode.PLUGIN_ERROR

    def test_plugin_error_without_plugin_id(self):
        exc = PluginError("Something failed")
        assert exc.plugin_id is None
        assert exc.details == {}

    def test_plugin_not_found_error(self):
        exc = PluginNotFoundError("ghost")
        assert str(exc) == "Plugin with id 'ghost' not found"
        assert exc.status_code == status.HTTP_404_NOT_FOUND
        assert exc.error_code == ErrorCode.PLUGIN_NOT_FOUND
        assert exc.plugin_id == "ghost"

    def test_plugin_already_installed_error(self):
        exc = PluginAlreadyInstalledError("seo-toolkit")
        assert exc.status_code == status.HTTP_409_CONFLICT
        assert exc.error_code == ErrorCode.PLUGIN_ALREADY_INSTALLED
        assert "already exists" in str(exc)

    def test_plugin_load_error(self):
        exc = PluginLoadError("Failed to load plugin x", plugin_id="x")
        assert str(exc) == "Failed to load plugin x"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.error_code == ErrorCode.PLUGIN_LOAD_FAILED

    def test_plugin_dependency_error(self):
        exc = PluginDependencyError("Plugin b depends on a, but it's not active", plugin_id="b", dependencies=["a"])
        assert str(exc) == "Plugin b depends on a, but it's not active"
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.dependencies == ["a"]
        assert exc.details == {"dependencies": ["a"], "plugin_id": "b"}

    def test_plugin_id_mismatch_error(self):
        exc = PluginIdMismatchError("ecommerce-shop", "seo-toolkit")
        assert str(exc) == "Plugin ID mismatch: ecommerce-shop vs seo-toolkit"
        assert exc.claimed_id == "ecommerce-shop"
        assert exc.plugin_id == "seo-toolkit"
        assert exc.error_code == ErrorCode.PLUGIN_ID_MISMATCH

    def test_plugin_operation_error_without_cause(self):
        exc = PluginOperationError("install", "widget")
        assert str(exc) == "Failed to install plugin widget"
        assert exc.details == {"operation": "install", "error": None, "plugin_id": "widget"}

    def test_plugin_operation_error_with_cause(self):
        exc = PluginOperationError("activate", "b", "Plugin b depends on a, but it's not active")
        assert str(exc) == "Failed to activate plugin b: Plugin b depends on a, but it's not active"
        assert exc.status_code == status.HTTP_400_BAD_REQUEST
        assert exc.error_code == ErrorCode.PLUGIN_OPERATION_FAILED

    def test_plugin_store_error(self):
        exc = PluginStoreError("save", "widget", "no such table: plugins")
        assert str(exc) == "Plugin store save failed: no such table: plugins"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.error_code == ErrorCode.PLUGIN_STORE_FAILED
        assert exc.details == {"operation": "save", "plugin_id": "widget"}

    def test_plugin_store_error_without_plugin(self):
        exc = PluginStoreError("load")
        assert str(exc) == "Plugin store load failed"
        assert exc.plugin_id is None


class TestExceptionInheritance:
    """Test exception inheritance hierarchy"""

    def test_all_exceptions_inherit_from_cms_exception(self):
        exceptions = [
            ResourceNotFoundError("Plugin"),
            DuplicateResourceError("Plugin", "id", "x"),
            PluginError("x"),
            PluginNotFoundError("x"),
            PluginAlreadyInstalledError("x"),
            PluginLoadError("x"),
            PluginDependencyError("x", plugin_id="x", dependencies=[]),
            PluginIdMismatchError("x", "y"),
            PluginOperationError("install", "x"),
            PluginStoreError("load"),
        ]
        for exc in exceptions:
            assert isinstance(exc, CMSError)
            assert isinstance(exc, Exception)

    def test_plugin_exceptions_inherit_correctly(self):
        assert issubclass(PluginNotFoundError, ResourceNotFoundError)
        assert issubclass(PluginAlreadyInstalledError, DuplicateResourceError)
        for cls in (PluginLoadError, PluginDependencyError, PluginIdMismatchError, PluginOperationError, PluginStoreError):
            assert issubclass(cls, PluginError)
