from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field
from doctainer.core.models import FrameworkSettings, StoreSettings


class DoctainerContext(BaseModel):
    """
    Settings resolved for one invocation.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    # Framework Settings (Maps to 'doctainer' section)
    settings: FrameworkSettings = Field(default_factory=FrameworkSettings)

    # Store Endpoint (Maps to 'store' section, falls back to ETCD_URL)
    store: StoreSettings = Field(default_factory=StoreSettings)

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None, **data: Any):
        """
        Initialize the context, optionally with a configuration dictionary.

        Values from the config file are passed as init arguments, so they take
        precedence over the environment.
        """
        if config_dict:
            if 'settings' not in data:
                data['settings'] = FrameworkSettings(**config_dict.get('doctainer', {}))
            if 'store' not in data:
                data['store'] = StoreSettings(**config_dict.get('store', {}))

        super().__init__(**data)
