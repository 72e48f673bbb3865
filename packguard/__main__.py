from packguard.cli import main

main()
