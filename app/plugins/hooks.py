"""
Event Name Constants

Centralised list of event names published on the EventBus.
Event names follow the `category:action` convention used by the admin UI.

Plugins may also emit their own ad-hoc event names; the bus does not
restrict names to this list.
"""

from __future__ import annotations

# ── CMS bootstrap ─────────────────────────────────────────────────────────────
EVENT_CMS_BEFORE_INIT = "cms:beforeInit"
EVENT_CMS_AFTER_INIT = "cms:afterInit"

# ── Content lifecycle ─────────────────────────────────────────────────────────
EVENT_CONTENT_BEFORE_CREATE = "content:beforeCreate"
EVENT_CONTENT_AFTER_CREATE = "content:afterCreate"
EVENT_CONTENT_BEFORE_UPDATE = "content:beforeUpdate"
EVENT_CONTENT_AFTER_UPDATE = "content:afterUpdate"
EVENT_CONTENT_BEFORE_DELETE = "content:beforeDelete"
EVENT_CONTENT_AFTER_DELETE = "content:afterDelete"
EVENT_CONTENT_AFTER_GET = "content:afterGet"
EVENT_CONTENT_PUBLISHED = "content:published"

# ── Media ─────────────────────────────────────────────────────────────────────
EVENT_MEDIA_BEFORE_UPLOAD = "media:beforeUpload"
EVENT_MEDIA_AFTER_UPLOAD = "media:afterUpload"
EVENT_MEDIA_BEFORE_DELETE = "media:beforeDelete"
EVENT_MEDIA_AFTER_DELETE = "media:afterDelete"

# ── Users ─────────────────────────────────────────────────────────────────────
EVENT_USER_BEFORE_CREATE = "user:beforeCreate"
EVENT_USER_AFTER_CREATE = "user:afterCreate"
EVENT_USER_BEFORE_UPDATE = "user:beforeUpdate"
EVENT_USER_AFTER_UPDATE = "user:afterUpdate"
EVENT_USER_BEFORE_DELETE = "user:beforeDelete"
EVENT_USER_AFTER_DELETE = "user:afterDelete"

# ── Plugin loading (payload: plugin id / loaded plugin / error dict) ─────────
EVENT_PLUGIN_BEFORE_LOAD = "plugin:beforeLoad"
EVENT_PLUGIN_AFTER_LOAD = "plugin:afterLoad"
EVENT_PLUGIN_LOAD_ERROR = "plugin:loadError"

# ── Plugin installation ───────────────────────────────────────────────────────
EVENT_PLUGIN_BEFORE_INSTALL = "plugin:beforeInstall"
EVENT_PLUGIN_AFTER_INSTALL = "plugin:afterInstall"
EVENT_PLUGIN_INSTALL_ERROR = "plugin:installError"

# ── Plugin activation ─────────────────────────────────────────────────────────
EVENT_PLUGIN_BEFORE_ACTIVATE = "plugin:beforeActivate"
EVENT_PLUGIN_AFTER_ACTIVATE = "plugin:afterActivate"
EVENT_PLUGIN_ACTIVATE_ERROR = "plugin:activateError"

# ── Plugin deactivation ───────────────────────────────────────────────────────
EVENT_PLUGIN_BEFORE_DEACTIVATE = "plugin:beforeDeactivate"
EVENT_PLUGIN_AFTER_DEACTIVATE = "plugin:afterDeactivate"
EVENT_PLUGIN_DEACTIVATE_ERROR = "plugin:deactivateError"

# ── Plugin uninstallation ─────────────────────────────────────────────────────
EVENT_PLUGIN_BEFORE_UNINSTALL = "plugin:beforeUninstall"
EVENT_PLUGIN_AFTER_UNINSTALL = "plugin:afterUninstall"
EVENT_PLUGIN_UNINSTALL_ERROR = "plugin:uninstallError"

# ── Plugin status / config (payload: PluginInstallation / id + config) ───────
EVENT_PLUGIN_STATUS_CHANGED = "plugin:statusChanged"
EVENT_PLUGIN_CONFIG_UPDATED = "plugin:configUpdated"

# ── Extension registration (payload: stamped contribution) ───────────────────
EVENT_PLUGIN_REGISTERED = "plugin:pluginRegistered"
EVENT_MENU_ITEM_REGISTERED = "plugin:menuItemRegistered"
EVENT_SETTINGS_PANEL_REGISTERED = "plugin:settingsPanelRegistered"
EVENT_EDITOR_EXTENSION_REGISTERED = "plugin:editorExtensionRegistered"
EVENT_ROUTE_REGISTERED = "plugin:routeRegistered"
EVENT_CONTENT_TYPE_REGISTERED = "plugin:contentTypeRegistered"

# ── Grouped lists ─────────────────────────────────────────────────────────────
PLUGIN_EVENTS: tuple[str, ...] = (
    EVENT_PLUGIN_BEFORE_LOAD,
    EVENT_PLUGIN_AFTER_LOAD,
    EVENT_PLUGIN_LOAD_ERROR,
    EVENT_PLUGIN_BEFORE_INSTALL,
    EVENT_PLUGIN_AFTER_INSTALL,
    EVENT_PLUGIN_INSTALL_ERROR,
    EVENT_PLUGIN_BEFORE_ACTIVATE,
    EVENT_PLUGIN_AFTER_ACTIVATE,
    EVENT_PLUGIN_ACTIVATE_ERROR,
    EVENT_PLUGIN_BEFORE_DEACTIVATE,
    EVENT_PLUGIN_AFTER_DEACTIVATE,
    EVENT_PLUGIN_DEACTIVATE_ERROR,
    EVENT_PLUGIN_BEFORE_UNINSTALL,
    EVENT_PLUGIN_AFTER_UNINSTALL,
    EVENT_PLUGIN_UNINSTALL_ERROR,
    EVENT_PLUGIN_STATUS_CHANGED,
    EVENT_PLUGIN_CONFIG_UPDATED,
    EVENT_PLUGIN_REGISTERED,
    EVENT_MENU_ITEM_REGISTERED,
    EVENT_SETTINGS_PANEL_REGISTERED,
    EVENT_EDITOR_EXTENSION_REGISTERED,
    EVENT_ROUTE_REGISTERED,
    EVENT_CONTENT_TYPE_REGISTERED,
)

# ── Master list ───────────────────────────────────────────────────────────────
ALL_EVENTS: list[str] = [
    EVENT_CMS_BEFORE_INIT,
    EVENT_CMS_AFTER_INIT,
    EVENT_CONTENT_BEFORE_CREATE,
    EVENT_CONTENT_AFTER_CREATE,
    EVENT_CONTENT_BEFORE_UPDATE,
    EVENT_CONTENT_AFTER_UPDATE,
    EVENT_CONTENT_BEFORE_DELETE,
    EVENT_CONTENT_AFTER_DELETE,
    EVENT_CONTENT_AFTER_GET,
    EVENT_CONTENT_PUBLISHED,
    EVENT_MEDIA_BEFORE_UPLOAD,
    EVENT_MEDIA_AFTER_UPLOAD,
    EVENT_MEDIA_BEFORE_DELETE,
    EVENT_MEDIA_AFTER_DELETE,
    EVENT_USER_BEFORE_CREATE,
    EVENT_USER_AFTER_CREATE,
    EVENT_USER_BEFORE_UPDATE,
    EVENT_USER_AFTER_UPDATE,
    EVENT_USER_BEFORE_DELETE,
    EVENT_USER_AFTER_DELETE,
    *PLUGIN_EVENTS,
]
