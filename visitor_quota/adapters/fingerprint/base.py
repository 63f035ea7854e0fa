from abc import ABC, abstractmethod


class AbstractFingerprintProvider(ABC):
	"""Interface for providers deriving a stable device identifier."""

	@abstractmethod
	async def get_visitor_id(self) -> str:
		"""Return a best-effort stable identifier for the current device.

		Returns:
			str: Opaque identifier, identical across sessions on the same device.

		Raises:
			ProviderUnavailableError: If no identifier can be derived.
		"""
		...
