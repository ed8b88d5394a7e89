# Database package
