"""Provisioner configuration."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Provisioner settings loaded from environment variables."""

    # Hypervisor connection
    libvirt_uri: str = "qemu:///system"

    # Fallback network for interfaces that resolve to nothing more specific.
    # Assumed to exist on the hypervisor; conventionally backs slot 0.
    management_network_name: str = "default"

    # Device defaults
    nic_model_type: str = "virtio"
    public_interface_dev: str = "eth0"  # Host device for direct (macvtap) NICs
    public_interface_mode: str = "bridge"

    class Config:
        env_prefix = "DOMNET_"


settings = Settings()
