"""Commands issued from pull request comments (``@github-actions /clear``)."""
