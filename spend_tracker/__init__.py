"""Console presentation layer for the spend tracker."""
