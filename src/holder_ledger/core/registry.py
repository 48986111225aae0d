"""Source extractor registry with auto-registration pattern."""

from typing import Any, Protocol

from holder_ledger.core.models import AuthorityTag, FilterContribution, SourceKind, SourceTag


class ExtractorInterface(Protocol):
    """
    Interface that all source extractors must implement.

    Attributes
    ----------
    tag : SourceTag | AuthorityTag
        Unique source identifier, used as the provenance tag of its output
    order : int
        Position in the fixed enumeration order
    kind : SourceKind
        Holder ledger source or authority-keyed sub-extraction

    Methods
    -------
    extract(context)
        Compute the complete owner -> amount mapping of this source
    filters(context)
        What the collector must capture for this source in the next snapshot

    """

    tag: SourceTag | AuthorityTag
    order: int
    kind: SourceKind

    def extract(self, context: Any) -> dict[str, int]:
        """
        Compute the owner -> raw amount mapping of this source.

        Parameters
        ----------
        context : ExtractionContext
            Snapshot, registry and collaborators of the run

        Returns
        -------
        dict[str, int]
            Owner address to raw amount in the smallest unit

        """
        ...

    def filters(self, context: Any) -> FilterContribution:
        """
        Capture requirements of this source for the next snapshot.

        Parameters
        ----------
        context : ExtractionContext
            Registry and live metadata of the run

        Returns
        -------
        FilterContribution
            Mints, pools and account data the collector must capture

        """
        ...


class SourceRegistry:
    """
    Registry for source extractors with auto-registration.

    Extractors register themselves using the @SourceRegistry.register decorator.
    The pipeline enumerates them in ascending ``order``.

    """

    _extractors: dict[str, type] = {}

    @classmethod
    def register(cls, extractor_class: type) -> type:
        """
        Decorator to register a source extractor.

        Parameters
        ----------
        extractor_class : type
            Extractor class to register

        Returns
        -------
        type
            The extractor class (for decorator chaining)

        Raises
        ------
        ValueError
            If the class has no tag or the tag is already taken

        Examples
        --------
        >>> @SourceRegistry.register
        ... class WalletExtractor(BaseExtractor):
        ...     tag = SourceTag.WALLET
        ...     order = 10

        """
        tag = getattr(extractor_class, "tag", None)
        if not tag:
            msg = f"Extractor {extractor_class.__name__} must define 'tag' attribute"
            raise ValueError(msg)

        existing = cls._extractors.get(tag)
        if existing is not None and existing is not extractor_class:
            msg = f"Source {tag} already registered by {existing.__name__}"
            raise ValueError(msg)

        cls._extractors[tag] = extractor_class
        return extractor_class

    @classmethod
    def unregister(cls, tag: str) -> None:
        """Remove an extractor (useful for testing)."""
        cls._extractors.pop(tag, None)

    @classmethod
    def get_extractor(cls, tag: str) -> type | None:
        """
        Get extractor class by source tag.

        Parameters
        ----------
        tag : str
            Source tag

        Returns
        -------
        type | None
            Extractor class or None if not found

        """
        return cls._extractors.get(tag)

    @classmethod
    def get_all_extractors(cls) -> list[type]:
        """
        Get all registered extractor classes in enumeration order.

        Returns
        -------
        list[type]
            Extractor classes sorted by ``order``, then tag

        """
        return sorted(cls._extractors.values(), key=lambda extractor: (extractor.order, str(extractor.tag)))

    @classmethod
    def get_extractors(cls, kind: SourceKind) -> list[type]:
        """
        Get extractor classes of one kind in enumeration order.

        Parameters
        ----------
        kind : SourceKind
            Holder or authority

        Returns
        -------
        list[type]
            Matching extractor classes

        """
        return [extractor for extractor in cls.get_all_extractors() if extractor.kind == kind]

    @classmethod
    def list_sources(cls) -> list[str]:
        """
        Get list of all registered source tags in enumeration order.

        Returns
        -------
        list[str]
            Source tags

        """
        return [str(extractor.tag) for extractor in cls.get_all_extractors()]
