"""Storefront Sections: sell and install theme sections for Shopify stores."""

__version__ = "1.0.0"
