# register every model before the first mapper is configured
import storefront.data.models  # noqa: F401
