# Utils package for the storefront backend
