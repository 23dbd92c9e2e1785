"""Flask presentation layer for the spend tracker."""
