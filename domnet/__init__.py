"""Network interface provisioning for libvirt domains."""
